from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .models import PeriodBatch, RawRecord, Task
from .scrapers import FixtureListScraper, MatchStatsScraper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeagueSource:
    name: str
    url: str


class LeagueHarvester:
    """Harvests a league season: the fixture list, then every match report.

    A page that fails is logged and skipped; the rest of the league still
    gets harvested. Records are grouped by gameweek into PeriodBatches."""

    def __init__(
        self,
        fixture_scraper: FixtureListScraper,
        stats_scraper: MatchStatsScraper,
        max_matches: Optional[int] = None,
    ) -> None:
        self._fixture_scraper = fixture_scraper
        self._stats_scraper = stats_scraper
        self._max_matches = max_matches

    def harvest(self, league: LeagueSource) -> List[PeriodBatch]:
        logger.info("=== harvesting %s ===", league.name)
        result = self._fixture_scraper.run(self._task(league, league.url))
        if not result.success:
            logger.error("no fixture list for %s (%s), skipping league", league.name, result.error_type)
            return []
        fixtures = result.data or []
        if not fixtures:
            logger.warning("no played fixtures found for %s", league.name)
            return []
        if self._max_matches is not None:
            fixtures = fixtures[: self._max_matches]

        by_gameweek: Dict[int, List[RawRecord]] = {}
        failed = 0
        for index, fixture in enumerate(fixtures, 1):
            gameweek = fixture["gameweek"]
            logger.info(
                "%s: match %d/%d, gameweek %d (%s)",
                league.name, index, len(fixtures), gameweek, fixture.get("date") or "unknown date",
            )
            stats = self._stats_scraper.run(
                self._task(league, fixture["match_url"], gameweek=gameweek, date=fixture.get("date"))
            )
            if not stats.success:
                failed += 1
                continue
            by_gameweek.setdefault(gameweek, []).extend(stats.data or [])

        logger.info(
            "%s: %d gameweeks harvested, %d of %d matches failed",
            league.name, len(by_gameweek), failed, len(fixtures),
        )
        return [
            PeriodBatch(period=gameweek, records=tuple(records), source=league.name)
            for gameweek, records in sorted(by_gameweek.items())
        ]

    def harvest_all(self, leagues: Iterable[LeagueSource]) -> Dict[str, List[PeriodBatch]]:
        return {league.name: self.harvest(league) for league in leagues}

    @staticmethod
    def _task(league: LeagueSource, url: str, **meta: object) -> Task:
        return Task(task_id=str(uuid.uuid4()), source_id=league.name, url=url, meta=dict(meta))
