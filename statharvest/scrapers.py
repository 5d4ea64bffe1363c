from __future__ import annotations

import logging
from typing import Any, Dict, List
from urllib.parse import urljoin

from bs4 import Tag

from .base import PageScraper
from .extractor import TableExtractor, anchor_href, anchor_text, last_token
from .models import RawRecord, Task

logger = logging.getLogger(__name__)

# FBref-specific text handling for categorical cells.
FBREF_COERCERS = {
    "player": anchor_text,
    "nationality": last_token,
}


def match_report_href(cell: Tag) -> str:
    """Link target of a "Match Report" cell; fixtures not yet played have none."""
    if anchor_text(cell).lower() != "match report":
        return ""
    return anchor_href(cell)


class FixtureListScraper(PageScraper):
    """Reads a season schedule page into the list of played fixtures."""

    TABLE_SELECTOR = "table.stats_table[id*='sched']"

    def default_extractor(self) -> TableExtractor:
        return TableExtractor(coercers={"date": anchor_text, "match_report": match_report_href})

    def parse(self, body: str, task: Task) -> List[Dict[str, Any]]:
        fixtures: List[Dict[str, Any]] = []
        seen = set()
        for record in self._extractor.extract(body, self.TABLE_SELECTOR):
            gameweek = record.get("gameweek")
            if not isinstance(gameweek, float) or not gameweek.is_integer():
                logger.debug("skipping fixture without a numeric gameweek: %r", gameweek)
                continue
            href = record.get("match_report")
            if not href:
                continue
            match_url = urljoin(task.url, str(href))
            if match_url in seen:
                continue
            seen.add(match_url)
            fixtures.append({"date": record.get("date", ""), "gameweek": int(gameweek), "match_url": match_url})

        logger.info("found %d played fixtures on %s", len(fixtures), task.url)
        return fixtures


class MatchStatsScraper(PageScraper):
    """Reads both teams' player summary tables from a match report page."""

    TABLE_SELECTOR = "table.stats_table[id*='summary']"

    def default_extractor(self) -> TableExtractor:
        return TableExtractor(coercers=FBREF_COERCERS)

    def parse(self, body: str, task: Task) -> List[RawRecord]:
        records = self._extractor.extract(body, self.TABLE_SELECTOR)
        if not records:
            logger.warning("no player rows found on %s", task.url)
        return records
