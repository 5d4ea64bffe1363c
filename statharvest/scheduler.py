from __future__ import annotations

import bisect
import json
import logging
import math
import threading
import time
from dataclasses import replace
from typing import Callable, List, Optional, TypeVar

from .errors import ConfigurationError, SchedulerCancelled
from .models import ScheduleSlot

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_BUFFER_SECS = 0.1


class RequestScheduler:
    """Thread-safe sliding-window request scheduler.

    Two layers are enforced on every acquire():

    - at most ``max_requests`` completions inside the trailing ``window_secs``;
    - a minimum spacing of ``ceil(window / max_requests)`` between issues, so
      the budget is spread over the window instead of spent in one burst.

    The ledger holds completion times, not issue times: a slow request pays
    for its slot when it finishes. Clock and sleep are injectable, and the
    optional ``cancel`` event aborts any wait with SchedulerCancelled."""

    def __init__(
        self,
        max_requests: int = 10,
        window_secs: float = 60.0,
        buffer_secs: float = MIN_BUFFER_SECS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        if max_requests < 1:
            raise ConfigurationError("max_requests must be at least 1")
        if window_secs <= 0:
            raise ConfigurationError("window_secs must be positive")
        if buffer_secs < MIN_BUFFER_SECS:
            raise ConfigurationError(f"buffer_secs must be at least {MIN_BUFFER_SECS}")
        self._max_requests = max_requests
        self._window = window_secs
        self._buffer = buffer_secs
        self._min_interval = math.ceil(window_secs * 1000 / max_requests) / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._cancel = cancel or threading.Event()

        self._acquire_lock = threading.Lock()
        self._ledger_lock = threading.Lock()
        self._completions: List[float] = []
        self._last_issued: Optional[float] = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def in_window(self) -> int:
        with self._ledger_lock:
            self._prune(self._clock())
            return len(self._completions)

    def cancel(self) -> None:
        self._cancel.set()

    def acquire(self) -> ScheduleSlot:
        """Block until a request may be issued and return its slot."""
        with self._acquire_lock:
            now = self._clock()
            with self._ledger_lock:
                self._prune(now)
                wait = 0.0
                if len(self._completions) >= self._max_requests:
                    wait = self._window - (now - self._completions[0]) + self._buffer
            if wait > 0:
                self._wait(wait, "window_full")
                now = self._clock()
                with self._ledger_lock:
                    self._prune(now)

            if self._last_issued is not None:
                since_last = now - self._last_issued
                if since_last < self._min_interval:
                    self._wait(self._min_interval - since_last, "min_interval")

            self._check_cancelled()
            issued_at = self._clock()
            self._last_issued = issued_at
            return ScheduleSlot(issued_at=issued_at)

    def release(self, slot: ScheduleSlot, completed_at: Optional[float] = None) -> ScheduleSlot:
        """Record the completion of a request issued under ``slot``.

        Failed requests must be released too; the opportunity was consumed.
        """
        if completed_at is None:
            completed_at = self._clock()
        with self._ledger_lock:
            # concurrent releases can arrive out of order
            bisect.insort(self._completions, completed_at)
        return replace(slot, completed_at=completed_at)

    def execute(self, fn: Callable[[], T]) -> T:
        """Run ``fn`` inside an acquired slot, releasing it whatever happens."""
        slot = self.acquire()
        try:
            return fn()
        finally:
            done = self.release(slot)
            logger.debug("request finished in %.0fms", (done.completed_at - done.issued_at) * 1000)

    def _prune(self, now: float) -> None:
        cutoff = now - self._window
        while self._completions and self._completions[0] <= cutoff:
            self._completions.pop(0)

    def _wait(self, seconds: float, reason: str) -> None:
        logger.info(
            json.dumps(
                {
                    "event": "scheduler_wait",
                    "reason": reason,
                    "wait_ms": int(seconds * 1000),
                    "in_window": len(self._completions),
                    "max_requests": self._max_requests,
                }
            )
        )
        if self._sleep is not None:
            self._check_cancelled()
            self._sleep(seconds)
        elif self._cancel.wait(seconds):
            raise SchedulerCancelled("cancelled while waiting for a request slot")
        self._check_cancelled()

    def _check_cancelled(self) -> None:
        if self._cancel.is_set():
            raise SchedulerCancelled("scheduler was cancelled")
