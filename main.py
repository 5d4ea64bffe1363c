from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict, replace
from typing import List, Optional

from statharvest.aggregation import AggregationEngine
from statharvest.backoff import BackoffStrategy
from statharvest.config import HarvestConfig, load_config
from statharvest.errors import ConfigurationError, SchedulerCancelled
from statharvest.fetcher import ResilientFetcher
from statharvest.harvest import LeagueHarvester
from statharvest.merger import merge
from statharvest.metrics import MetricsCollector
from statharvest.scheduler import RequestScheduler
from statharvest.scoring import value_function, normalize_weights
from statharvest.scrapers import FixtureListScraper, MatchStatsScraper
from statharvest.storage import JsonStorage

logger = logging.getLogger("statharvest")

DEFAULT_CONFIG_PATH = "statharvest.yaml"


def run_harvest(config: HarvestConfig, league_names: Optional[List[str]] = None, max_matches: Optional[int] = None) -> None:
    metrics = MetricsCollector()
    scheduler = RequestScheduler(
        max_requests=config.scheduler.max_requests,
        window_secs=config.scheduler.window_secs,
        buffer_secs=config.scheduler.buffer_secs,
    )
    backoff = BackoffStrategy(
        base_seconds=config.fetcher.backoff_base_secs,
        max_seconds=config.fetcher.backoff_max_secs,
    )
    storage = JsonStorage(config.data_dir)

    leagues = config.leagues
    if league_names:
        wanted = {name.lower() for name in league_names}
        leagues = tuple(league for league in leagues if league.name.lower() in wanted)
        if not leagues:
            raise ConfigurationError(f"no configured league matches {', '.join(league_names)}")

    logger.info(
        "starting harvest: max %d requests per %.0fs, at least %.1fs apart",
        config.scheduler.max_requests, config.scheduler.window_secs, scheduler.min_interval,
    )
    with ResilientFetcher(
        backoff=backoff,
        max_attempts=config.fetcher.max_attempts,
        timeout=config.fetcher.timeout,
        impersonate=config.fetcher.impersonate,
        metrics=metrics,
    ) as fetcher:
        harvester = LeagueHarvester(
            FixtureListScraper(fetcher, scheduler),
            MatchStatsScraper(fetcher, scheduler),
            max_matches=max_matches,
        )
        for league in leagues:
            batches = harvester.harvest(league)
            if batches:
                storage.save_batches(league.name, batches)

    snapshot = metrics.snapshot(window_secs=24 * 3600)
    logger.info(json.dumps({"event": "harvest_done", **asdict(snapshot)}))


def run_aggregate(config: HarvestConfig, output: Optional[str] = None) -> None:
    engine = AggregationEngine(config.aggregation)
    storage = JsonStorage(config.data_dir)
    batches = storage.load_batches()
    if not batches:
        logger.warning("no harvested data found in %s", config.data_dir)

    weights = normalize_weights(config.aggregation.fields)
    merged = merge(batches, value_function(weights), key_field=config.aggregation.key_field)
    frames = engine.run(merged)
    storage.save_frames(output or config.frames_path, frames)

    if frames and frames[-1].entries:
        logger.info("final frame %s:", frames[-1].label)
        for rank, entry in enumerate(frames[-1].entries, 1):
            logger.info("  %d. %s (%s) %.2f", rank, entry.name, entry.position or "?", entry.value)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Harvest match stats and build per-matchday leaderboards")
    parser.add_argument("command", choices=["harvest", "aggregate", "run"], help="What to do")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to YAML config")
    parser.add_argument("--league", action="append", help="Only harvest this league (repeatable)")
    parser.add_argument("--max-matches", type=int, default=None, help="Stop after this many matches per league")
    parser.add_argument("--output", default=None, help="Frames output path (overrides config)")
    parser.add_argument("--value-type", default=None, help="cumulative, per_exposure or per_appearance")
    parser.add_argument("--count", type=int, default=None, help="Leaderboard size")
    parser.add_argument("--log-level", default="INFO", help="Logging level")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        overrides = {}
        if args.value_type:
            overrides["value_type"] = args.value_type
        if args.count is not None:
            overrides["output_size"] = args.count
        if overrides:
            config = replace(config, aggregation=replace(config.aggregation, **overrides))
        # Fail before any network activity.
        config.aggregation.validate()
    except ConfigurationError as exc:
        parser.error(str(exc))

    try:
        if args.command in ("harvest", "run"):
            run_harvest(config, args.league, args.max_matches)
        if args.command in ("aggregate", "run"):
            run_aggregate(config, args.output)
    except (KeyboardInterrupt, SchedulerCancelled):
        # Leagues saved before the interrupt stay on disk.
        logger.warning("interrupted by user, exiting")
    except ConfigurationError as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()
