from __future__ import annotations

import math
from typing import Callable, Dict, Mapping, Sequence, Union

from .errors import ConfigurationError
from .models import RawRecord

Weights = Mapping[str, float]
FieldSpec = Union[Mapping[str, float], Sequence[str]]

# Weight presets keyed by FBref data-stat names, grouped by what they measure.
METRIC_WEIGHTS: Dict[str, Dict[str, float]] = {
    "goal_contribution": {
        "goals": 1.0,
        "assists": 1.0,
    },
    "expected_performance": {
        "npxg": 10.0,
        "xg_assist": 10.0,
    },
    "creation_and_threat": {
        "gca": 8.0,
        "sca": 3.0,
        "shots_on_target": 2.0,
        "shots": 1.0,
    },
    "ball_progression": {
        "progressive_carries": 1.5,
        "progressive_passes": 1.5,
        "take_ons_won": 2.0,
    },
    "defense": {
        "tackles": 3.0,
        "interceptions": 3.0,
        "blocks": 2.5,
    },
    "negative_impact": {
        "cards_yellow": -5.0,
        "cards_red": -20.0,
    },
}


def flatten_weights(*categories: str) -> Dict[str, float]:
    """Merge preset categories into one field -> weight mapping.

    With no arguments every category is included.
    """
    names = categories or tuple(METRIC_WEIGHTS)
    weights: Dict[str, float] = {}
    for name in names:
        if name not in METRIC_WEIGHTS:
            raise ConfigurationError(f"Unknown metric category: {name}")
        weights.update(METRIC_WEIGHTS[name])
    return weights


def normalize_weights(fields: FieldSpec) -> Dict[str, float]:
    """Collapse a list of field names or a field -> weight mapping into weights.

    Listed names get weight 1.
    """
    if isinstance(fields, str):
        raise ConfigurationError("fields must be a list or mapping, not a single string")
    if isinstance(fields, Mapping):
        items = list(fields.items())
    else:
        items = [(name, 1.0) for name in fields]
    if not items:
        raise ConfigurationError("at least one field is required")

    weights: Dict[str, float] = {}
    for name, weight in items:
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"invalid field name: {name!r}")
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or not math.isfinite(weight):
            raise ConfigurationError(f"weight for '{name}' must be a finite number, got {weight!r}")
        weights[name] = float(weight)
    return weights


def numeric(value: object) -> float:
    """Numeric view of a record value; text and missing values count as 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def weighted_value(record: RawRecord, weights: Weights) -> float:
    return sum(numeric(record.get(name)) * weight for name, weight in weights.items())


def value_function(weights: Weights) -> Callable[[RawRecord], float]:
    """Bind weights into a record -> value function for the merger."""
    bound = dict(weights)

    def _value(record: RawRecord) -> float:
        return weighted_value(record, bound)

    return _value
