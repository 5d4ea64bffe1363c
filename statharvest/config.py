"""Run configuration loaded from YAML.

Every section is optional; anything left out falls back to the dataclass
defaults, which harvest the five major European leagues.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .aggregation import AggregationConfig
from .errors import ConfigurationError
from .harvest import LeagueSource
from .scheduler import MIN_BUFFER_SECS
from .scoring import flatten_weights, normalize_weights

logger = logging.getLogger(__name__)

DEFAULT_LEAGUES: Tuple[LeagueSource, ...] = (
    LeagueSource("Premier League", "https://fbref.com/en/comps/9/schedule/Premier-League-Scores-and-Fixtures"),
    LeagueSource("La Liga", "https://fbref.com/en/comps/12/schedule/La-Liga-Scores-and-Fixtures"),
    LeagueSource("Bundesliga", "https://fbref.com/en/comps/20/schedule/Bundesliga-Scores-and-Fixtures"),
    LeagueSource("Serie A", "https://fbref.com/en/comps/11/schedule/Serie-A-Scores-and-Fixtures"),
    LeagueSource("Ligue 1", "https://fbref.com/en/comps/13/schedule/Ligue-1-Scores-and-Fixtures"),
)


def _require_int(value: Any, label: str, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigurationError(f"{label} must be an integer >= {minimum}, got {value!r}")


def _require_number(value: Any, label: str, positive: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{label} must be a number, got {value!r}")
    if positive and value <= 0:
        raise ConfigurationError(f"{label} must be positive, got {value!r}")


@dataclass(frozen=True)
class SchedulerConfig:
    max_requests: int = 10
    window_secs: float = 60.0
    buffer_secs: float = 0.1

    def validate(self) -> None:
        _require_int(self.max_requests, "scheduler.max_requests", minimum=1)
        _require_number(self.window_secs, "scheduler.window_secs", positive=True)
        _require_number(self.buffer_secs, "scheduler.buffer_secs")
        if self.buffer_secs < MIN_BUFFER_SECS:
            raise ConfigurationError(f"scheduler.buffer_secs must be at least {MIN_BUFFER_SECS}")


@dataclass(frozen=True)
class FetcherConfig:
    max_attempts: int = 5
    timeout: float = 30.0
    impersonate: Optional[str] = None
    backoff_base_secs: float = 1.0
    backoff_max_secs: float = 60.0

    def validate(self) -> None:
        _require_int(self.max_attempts, "fetcher.max_attempts", minimum=1)
        _require_number(self.timeout, "fetcher.timeout", positive=True)
        _require_number(self.backoff_base_secs, "fetcher.backoff_base_secs", positive=True)
        _require_number(self.backoff_max_secs, "fetcher.backoff_max_secs", positive=True)
        if self.impersonate is not None and not isinstance(self.impersonate, str):
            raise ConfigurationError(f"fetcher.impersonate must be a browser name, got {self.impersonate!r}")


@dataclass(frozen=True)
class HarvestConfig:
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    fetcher: FetcherConfig = field(default_factory=FetcherConfig)
    leagues: Tuple[LeagueSource, ...] = DEFAULT_LEAGUES
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    data_dir: str = "data"
    frames_path: str = "output/frames.json"


def load_config(path: Optional[str] = None) -> HarvestConfig:
    """Load a HarvestConfig from YAML, or the defaults when the file is missing."""
    if not path:
        return HarvestConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("config not found at %s, using defaults", path)
        return HarvestConfig()
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc
    config = build_config(raw or {})
    logger.info("loaded config from %s", path)
    return config


def build_config(raw: Mapping[str, Any]) -> HarvestConfig:
    if not isinstance(raw, Mapping):
        raise ConfigurationError("config root must be a mapping")
    unknown = set(raw) - {"scheduler", "fetcher", "leagues", "aggregation", "data_dir", "frames_path"}
    if unknown:
        raise ConfigurationError(f"unknown config sections: {', '.join(sorted(unknown))}")

    kwargs: Dict[str, Any] = {
        "scheduler": _section(SchedulerConfig, raw.get("scheduler")),
        "fetcher": _section(FetcherConfig, raw.get("fetcher")),
        "aggregation": _aggregation(raw.get("aggregation")),
    }
    if raw.get("leagues") is not None:
        kwargs["leagues"] = _leagues(raw["leagues"])
    for key in ("data_dir", "frames_path"):
        if raw.get(key) is not None:
            kwargs[key] = str(raw[key])
    return HarvestConfig(**kwargs)


def _section(cls: Any, raw: Optional[Mapping[str, Any]]) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{cls.__name__} section must be a mapping")
    try:
        config = cls(**raw)
    except TypeError as exc:
        raise ConfigurationError(f"invalid {cls.__name__}: {exc}") from exc
    config.validate()
    return config


def _aggregation(raw: Optional[Mapping[str, Any]]) -> AggregationConfig:
    """Build the aggregation section; ``presets`` names METRIC_WEIGHTS categories.

    Preset weights come first and explicit ``fields`` override them.
    """
    if raw is None or not isinstance(raw, Mapping) or "presets" not in raw:
        return _section(AggregationConfig, raw)
    raw = dict(raw)
    presets = raw.pop("presets")
    if isinstance(presets, str):
        presets = [presets]
    if not isinstance(presets, list) or not presets:
        raise ConfigurationError("aggregation.presets must be a non-empty list of category names")
    weights = flatten_weights(*(str(name) for name in presets))
    fields = raw.get("fields")
    if fields is not None:
        weights.update(normalize_weights(fields))
    raw["fields"] = weights
    return _section(AggregationConfig, raw)


def _leagues(raw: Any) -> Tuple[LeagueSource, ...]:
    if not isinstance(raw, list):
        raise ConfigurationError("leagues must be a list")
    leagues = []
    for entry in raw:
        if not isinstance(entry, Mapping) or not entry.get("name") or not entry.get("url"):
            raise ConfigurationError(f"each league needs a name and url, got {entry!r}")
        leagues.append(LeagueSource(str(entry["name"]), str(entry["url"])))
    return tuple(leagues)
