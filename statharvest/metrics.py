from __future__ import annotations

import time
from collections import deque
from dataclasses import asdict
from threading import Lock
from typing import Callable, Deque, Dict, List

from .models import FetchAttempt, MetricsSnapshot


class MetricsCollector:
    """Thread-safe collector for fetch attempt statistics.

    Records FetchAttempt events and produces aggregated MetricsSnapshot
    objects over configurable sliding time windows."""

    def __init__(self, clock: Callable[[], float] = time.time, maxlen: int = 10000) -> None:
        self._lock = Lock()
        self._clock = clock
        self._events: Deque[tuple[float, FetchAttempt]] = deque(maxlen=maxlen)

    def record_attempt(self, attempt: FetchAttempt) -> None:
        """Record a fetch attempt with the current timestamp."""
        with self._lock:
            self._events.append((self._clock(), attempt))

    def snapshot(self, window_secs: int) -> MetricsSnapshot:
        """Return aggregated metrics for attempts within the last window_secs seconds."""
        now = self._clock()
        cutoff = now - window_secs
        with self._lock:
            events: List[FetchAttempt] = [e for ts, e in self._events if ts >= cutoff]
        total = len(events)
        http_403_count = sum(1 for e in events if e.status_code == 403)
        return MetricsSnapshot(
            window_secs=window_secs,
            total_requests=total,
            success_count=sum(1 for e in events if e.success),
            timeout_count=sum(1 for e in events if e.error_type and "Timeout" in e.error_type),
            conn_error_count=sum(1 for e in events if e.error_type == "ConnectionError"),
            http_429_count=sum(1 for e in events if e.status_code == 429),
            http_403_count=http_403_count,
            http_404_count=sum(1 for e in events if e.status_code == 404),
            ip_ban_suspected_count=1 if http_403_count >= 3 else 0,
            avg_latency_ms=(sum(e.latency_ms for e in events) / total) if total else 0.0,
            timestamp=now,
        )

    def export_json(self) -> List[Dict]:
        """Export all recorded attempts as a list of dictionaries."""
        with self._lock:
            return [{"timestamp": ts, **asdict(e)} for ts, e in self._events]
