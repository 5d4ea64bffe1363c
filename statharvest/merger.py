from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from .models import PeriodBatch, PeriodId, RawRecord

logger = logging.getLogger(__name__)

ValueFn = Callable[[RawRecord], float]


def period_number(period: PeriodId) -> Optional[int]:
    """Integer form of a period id, or None for labels like "Unknown"."""
    if isinstance(period, bool):
        return None
    if isinstance(period, int):
        return period
    if isinstance(period, float):
        return int(period) if period.is_integer() else None
    try:
        return int(str(period).strip())
    except ValueError:
        return None


class SourceMerger:
    """Combines per-source period batches into one deduplicated batch per period.

    Duplicates of an entity within a period are resolved by value: the record
    scoring strictly higher under ``value_fn`` wins, ties keep the first one
    seen. Upstream pages sometimes list a partial and a full row for the same
    player and the larger one is the complete row."""

    def __init__(self, value_fn: ValueFn, key_field: str = "player") -> None:
        self._value_fn = value_fn
        self._key_field = key_field

    def merge(self, batches: Iterable[PeriodBatch]) -> Dict[int, List[RawRecord]]:
        grouped: Dict[int, List[RawRecord]] = {}
        for batch in batches:
            period = period_number(batch.period)
            if period is None:
                logger.warning(
                    "dropping %d records from %s with non-numeric period %r",
                    len(batch.records),
                    batch.source or "unknown source",
                    batch.period,
                )
                continue
            grouped.setdefault(period, []).extend(batch.records)

        return {period: self._dedupe(period, grouped[period]) for period in sorted(grouped)}

    def _dedupe(self, period: int, records: List[RawRecord]) -> List[RawRecord]:
        winners: Dict[str, RawRecord] = {}
        scores: Dict[str, float] = {}
        keyless = 0
        for record in records:
            key = record.get(self._key_field)
            if key is None or key == "":
                keyless += 1
                continue
            key = str(key)
            score = self._value_fn(record)
            if key not in winners or score > scores[key]:
                winners[key] = record
                scores[key] = score

        if keyless:
            logger.warning("MD%d: dropped %d records without '%s'", period, keyless, self._key_field)
        removed = len(records) - keyless - len(winners)
        if removed:
            logger.info("MD%d: removed %d duplicates (%d -> %d)", period, removed, len(records), len(winners))
        return list(winners.values())


def merge(
    batches: Iterable[PeriodBatch], value_fn: ValueFn, key_field: str = "player"
) -> Dict[int, List[RawRecord]]:
    return SourceMerger(value_fn, key_field=key_field).merge(batches)
