"""Sports statistics harvester and leaderboard builder.

Fetches stats pages under a request budget, extracts table rows into
records, merges sources per period and aggregates them into ranked
per-period frames.

Key modules:
    scheduler   -- RequestScheduler sliding-window request budget
    backoff     -- BackoffStrategy for exponential retry delays
    profiles    -- DEFAULT_PROFILES browser header pool
    fetcher     -- ResilientFetcher with retry classification
    extractor   -- TableExtractor for HTML tables
    merger      -- SourceMerger and merge() for cross-source dedup
    scoring     -- weighted values and METRIC_WEIGHTS presets
    aggregation -- AggregationEngine and aggregate()
    base        -- PageScraper fetch-then-parse template
    scrapers    -- FixtureListScraper, MatchStatsScraper
    harvest     -- LeagueHarvester multi-page orchestration
    metrics     -- MetricsCollector for fetch statistics
    storage     -- JsonStorage for batches and frames
    config      -- YAML run configuration
    models      -- dataclasses shared across modules
    errors      -- exception hierarchy
"""
from .aggregation import AggregationConfig, AggregationEngine, ValueType, aggregate
from .errors import (
    ConfigurationError,
    ExtractionRowError,
    ExtractionTableError,
    FetchError,
    NotFoundError,
    PermanentFetchError,
    SchedulerCancelled,
    TransientFetchError,
)
from .extractor import TableExtractor
from .fetcher import ResilientFetcher
from .merger import SourceMerger, merge
from .models import Frame, FrameEntry, PeriodBatch, ScheduleSlot
from .scheduler import RequestScheduler

__all__ = [
    "AggregationConfig",
    "AggregationEngine",
    "ConfigurationError",
    "ExtractionRowError",
    "ExtractionTableError",
    "FetchError",
    "Frame",
    "FrameEntry",
    "NotFoundError",
    "PeriodBatch",
    "PermanentFetchError",
    "RequestScheduler",
    "ResilientFetcher",
    "ScheduleSlot",
    "SchedulerCancelled",
    "SourceMerger",
    "TableExtractor",
    "TransientFetchError",
    "ValueType",
    "aggregate",
    "merge",
]
