"""Period-by-period leaderboard aggregation.

The engine is a pure function of its input: merged records keyed by
positive integer period plus an AggregationConfig. It walks periods
1..max in order, keeps one EntityAccumulator per entity and emits one
ranked Frame per period, including periods with no records.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Collection, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError
from .models import EntityAccumulator, Frame, FrameEntry, RawRecord
from .scoring import FieldSpec, numeric, normalize_weights, weighted_value

logger = logging.getLogger(__name__)


class ValueType(str, Enum):
    CUMULATIVE = "cumulative"
    PER_EXPOSURE = "per_exposure"
    PER_APPEARANCE = "per_appearance"

    @classmethod
    def parse(cls, value: Union["ValueType", str]) -> "ValueType":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {"aggregate": cls.CUMULATIVE, "per90": cls.PER_EXPOSURE, "average": cls.PER_APPEARANCE}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ConfigurationError(f"Unknown value_type: {value!r}") from None


@dataclass(frozen=True)
class AggregationConfig:
    fields: FieldSpec = ("goals",)
    output_size: int = 10
    position_filter: Optional[Collection[str]] = None
    name_filter: Optional[Collection[str]] = None
    value_type: Union[ValueType, str] = ValueType.CUMULATIVE
    minimum_exposure: float = 0.0
    exposure_field: str = "minutes"
    reference_unit: float = 90.0
    key_field: str = "player"
    position_field: str = "position"

    def validate(self) -> None:
        """Raise ConfigurationError if the config cannot drive an aggregation."""
        normalize_weights(self.fields)
        ValueType.parse(self.value_type)
        if isinstance(self.output_size, bool) or not isinstance(self.output_size, int) or self.output_size < 1:
            raise ConfigurationError(f"output_size must be a positive integer, got {self.output_size!r}")
        if not isinstance(self.minimum_exposure, (int, float)) or self.minimum_exposure < 0:
            raise ConfigurationError(f"minimum_exposure must be >= 0, got {self.minimum_exposure!r}")
        if not isinstance(self.reference_unit, (int, float)) or self.reference_unit <= 0:
            raise ConfigurationError(f"reference_unit must be positive, got {self.reference_unit!r}")
        _filter_terms(self.position_filter, "position_filter")
        _filter_terms(self.name_filter, "name_filter")


def _filter_terms(terms: Optional[Collection[str]], label: str) -> Tuple[str, ...]:
    if terms is None:
        return ()
    if isinstance(terms, str):
        terms = (terms,)
    result = []
    for term in terms:
        if not isinstance(term, str):
            raise ConfigurationError(f"{label} entries must be strings, got {term!r}")
        result.append(term.lower())
    return tuple(result)


class AggregationEngine:
    """Folds merged per-period records into ranked frames."""

    def __init__(self, config: AggregationConfig) -> None:
        config.validate()
        self._config = config
        self._weights = normalize_weights(config.fields)
        self._value_type = ValueType.parse(config.value_type)
        self._positions = frozenset(_filter_terms(config.position_filter, "position_filter"))
        self._names = _filter_terms(config.name_filter, "name_filter")

    @property
    def normalized(self) -> bool:
        return self._value_type is not ValueType.CUMULATIVE

    def run(self, merged: Mapping[int, Sequence[RawRecord]]) -> List[Frame]:
        periods = [p for p in merged if isinstance(p, int) and not isinstance(p, bool) and p >= 1]
        if len(periods) != len(merged):
            logger.warning("ignoring %d non-positive or non-integer periods", len(merged) - len(periods))
        if not periods:
            return []
        max_period = max(periods)
        lifetime = self._lifetime_totals(merged, max_period)

        # Accumulators live for this call only; runs never share them.
        accumulators: Dict[str, EntityAccumulator] = {}
        frames: List[Frame] = []
        for period in range(1, max_period + 1):
            for record in self._eligible_records(merged.get(period, ())):
                name = str(record[self._config.key_field])
                acc = accumulators.get(name)
                if acc is None:
                    acc = EntityAccumulator(
                        name=name,
                        lifetime_total=lifetime.get(name, 0.0),
                        first_seen=len(accumulators),
                    )
                    accumulators[name] = acc
                self._accumulate(acc, record)
            frames.append(self._frame(period, accumulators.values()))

        logger.info("generated %d frames over %d entities", len(frames), len(accumulators))
        return frames

    def _lifetime_totals(self, merged: Mapping[int, Sequence[RawRecord]], max_period: int) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for period in range(1, max_period + 1):
            for record in self._eligible_records(merged.get(period, ())):
                value = weighted_value(record, self._weights)
                if value > 0:
                    name = str(record[self._config.key_field])
                    totals[name] = totals.get(name, 0.0) + value
        return totals

    def _eligible_records(self, records: Iterable[RawRecord]) -> Iterable[RawRecord]:
        for record in records:
            name = record.get(self._config.key_field)
            if name is None or name == "":
                continue
            if self._positions:
                position = record.get(self._config.position_field)
                if not isinstance(position, str) or position.lower() not in self._positions:
                    continue
            if self._names and not any(term in str(name).lower() for term in self._names):
                continue
            yield record

    def _accumulate(self, acc: EntityAccumulator, record: RawRecord) -> None:
        acc.appearances += 1
        acc.exposure += numeric(record.get(self._config.exposure_field))
        position = record.get(self._config.position_field)
        if isinstance(position, str) and position:
            acc.position = position
        value = weighted_value(record, self._weights)
        # Only positive periods count as scoring; exposure counts regardless.
        if value > 0:
            acc.cumulative_value += value

    def _display_value(self, acc: EntityAccumulator) -> float:
        if self._value_type is ValueType.PER_EXPOSURE:
            if acc.exposure == 0:
                return 0.0
            return acc.cumulative_value / acc.exposure * self._config.reference_unit
        if self._value_type is ValueType.PER_APPEARANCE:
            return acc.cumulative_value / acc.appearances if acc.appearances else 0.0
        return acc.cumulative_value

    def _is_eligible(self, acc: EntityAccumulator) -> bool:
        if self._value_type is ValueType.PER_EXPOSURE:
            return acc.exposure >= self._config.minimum_exposure
        if self._value_type is ValueType.PER_APPEARANCE:
            return acc.appearances >= self._config.minimum_exposure
        return True

    def _frame(self, period: int, accumulators: Iterable[EntityAccumulator]) -> Frame:
        ranked = [(acc, self._display_value(acc)) for acc in accumulators if self._is_eligible(acc)]
        ranked.sort(key=lambda item: (-item[1], -item[0].lifetime_total, item[0].first_seen))
        entries = tuple(
            FrameEntry(
                name=acc.name,
                value=value,
                position=acc.position,
                exposure=acc.exposure,
                appearances=acc.appearances,
                cumulative=acc.cumulative_value,
            )
            for acc, value in ranked[: self._config.output_size]
        )
        return Frame(period=period, entries=entries, normalized=self.normalized)


def aggregate(merged: Mapping[int, Sequence[RawRecord]], config: AggregationConfig) -> List[Frame]:
    return AggregationEngine(config).run(merged)
