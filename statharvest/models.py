from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

Value = Union[float, str]
RawRecord = Dict[str, Value]
PeriodId = Union[int, str]


@dataclass(frozen=True)
class ScheduleSlot:
    issued_at: float
    completed_at: Optional[float] = None


@dataclass(frozen=True)
class Task:
    task_id: str
    source_id: str
    url: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScrapeResult:
    task_id: str
    source_id: str
    url: str
    success: bool
    latency_ms: int
    data: Optional[Any]
    error_type: Optional[str]


@dataclass(frozen=True)
class FetchAttempt:
    """One HTTP attempt made by the fetcher, successful or not."""

    url: str
    attempt: int
    success: bool
    status_code: Optional[int]
    latency_ms: int
    error_type: Optional[str]


@dataclass(frozen=True)
class MetricsSnapshot:
    window_secs: int
    total_requests: int
    success_count: int
    timeout_count: int
    conn_error_count: int
    http_429_count: int
    http_403_count: int
    http_404_count: int
    ip_ban_suspected_count: int
    avg_latency_ms: float
    timestamp: float


@dataclass(frozen=True)
class PeriodBatch:
    """All records one source produced for one period."""

    period: PeriodId
    records: Tuple[RawRecord, ...] = ()
    source: str = ""


@dataclass
class EntityAccumulator:
    """Running totals for one entity; owned by a single aggregation run."""

    name: str
    cumulative_value: float = 0.0
    exposure: float = 0.0
    appearances: int = 0
    position: Optional[str] = None
    lifetime_total: float = 0.0
    first_seen: int = 0


@dataclass(frozen=True)
class FrameEntry:
    name: str
    value: float
    position: Optional[str]
    exposure: float = 0.0
    appearances: int = 0
    cumulative: float = 0.0


@dataclass(frozen=True)
class Frame:
    """Ranked leaderboard snapshot as of one period."""

    period: int
    entries: Tuple[FrameEntry, ...] = ()
    normalized: bool = False

    @property
    def label(self) -> str:
        return f"MD{self.period}"

    def to_dict(self) -> Dict[str, Any]:
        data: List[Dict[str, Any]] = []
        for entry in self.entries:
            item: Dict[str, Any] = {
                "name": entry.name,
                "value": entry.value,
                "position": entry.position,
            }
            if self.normalized:
                item["exposure"] = entry.exposure
                item["appearances"] = entry.appearances
                item["cumulative"] = entry.cumulative
            data.append(item)
        return {"period": self.label, "data": data}
