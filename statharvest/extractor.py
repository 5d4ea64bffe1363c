"""Generic HTML table to record extraction.

The extractor knows nothing about a particular site: which tables to read
is a CSS selector, which cells become fields is another selector, and any
field that needs special text handling gets a coercer function from the
caller. See scrapers.py for the FBref wiring.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional, Union

from bs4 import BeautifulSoup, Comment, Tag

from .errors import ExtractionError, ExtractionRowError, ExtractionTableError
from .models import RawRecord, Value

logger = logging.getLogger(__name__)

FieldCoercer = Callable[[Tag], str]

DEFAULT_ROW_FIELD_SELECTOR = "th[data-stat], td[data-stat]"
DEFAULT_CATEGORICAL_FIELDS = frozenset({"player", "nationality", "position"})
SKIP_ROW_CLASSES = frozenset({"spacer", "thead", "partial_table_thead"})

ROW_SNIPPET_CHARS = 200
TABLE_SNIPPET_CHARS = 500

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def anchor_text(cell: Tag) -> str:
    """Text of the first link in the cell, or of the cell itself."""
    link = cell.find("a")
    source = link if link is not None else cell
    return source.get_text().strip()


def last_token(cell: Tag) -> str:
    """Last whitespace-delimited token, e.g. "br BRA" -> "BRA"."""
    parts = anchor_text(cell).split()
    return parts[-1] if parts else ""


def anchor_href(cell: Tag) -> str:
    link = cell.find("a", href=True)
    return link["href"].strip() if link is not None else ""


def is_number(text: str) -> bool:
    return bool(_NUMBER_RE.match(text))


@dataclass
class ExtractionReport:
    records: List[RawRecord] = field(default_factory=list)
    errors: List[ExtractionError] = field(default_factory=list)
    tables_seen: int = 0


class TableExtractor:
    """Turns matching tables into one record per data row.

    Row and table failures never propagate: they are logged, kept in the
    report and extraction moves on to the next row or table."""

    def __init__(
        self,
        coercers: Optional[Mapping[str, FieldCoercer]] = None,
        categorical_fields: Iterable[str] = DEFAULT_CATEGORICAL_FIELDS,
        field_attr: str = "data-stat",
        zero_class: str = "iz",
        skip_row_classes: Iterable[str] = SKIP_ROW_CLASSES,
        search_comments: bool = False,
        parser: str = "html.parser",
    ) -> None:
        self._coercers = dict(coercers or {})
        self._categorical = frozenset(categorical_fields) | frozenset(self._coercers)
        self._field_attr = field_attr
        self._zero_class = zero_class
        self._skip_row_classes = frozenset(skip_row_classes)
        self._search_comments = search_comments
        self._parser = parser

    def extract(
        self,
        markup: Union[str, bytes, Tag],
        table_selector: str,
        row_field_selector: str = DEFAULT_ROW_FIELD_SELECTOR,
    ) -> List[RawRecord]:
        return self.extract_report(markup, table_selector, row_field_selector).records

    def extract_report(
        self,
        markup: Union[str, bytes, Tag],
        table_selector: str,
        row_field_selector: str = DEFAULT_ROW_FIELD_SELECTOR,
    ) -> ExtractionReport:
        soup = markup if isinstance(markup, Tag) else BeautifulSoup(markup, self._parser)
        tables = self._find_tables(soup, table_selector)
        report = ExtractionReport(tables_seen=len(tables))
        logger.info("found %d tables matching %r", len(tables), table_selector)

        for index, table in enumerate(tables):
            table_id = table.get("id")
            if not table_id:
                logger.warning("table #%d has no id, skipping", index)
                continue
            try:
                self._extract_table(table, table_id, row_field_selector, report)
            except Exception as exc:  # noqa: BLE001
                error = ExtractionTableError(
                    table_id, f"{type(exc).__name__}: {exc}", str(table)[:TABLE_SNIPPET_CHARS]
                )
                report.errors.append(error)
                logger.error("%s; markup: %s...", error, error.snippet)

        logger.info("extracted %d records (%d errors)", len(report.records), len(report.errors))
        return report

    def _find_tables(self, soup: Tag, table_selector: str) -> List[Tag]:
        tables = list(soup.select(table_selector))
        if not self._search_comments:
            return tables
        seen = {t.get("id") for t in tables if t.get("id")}
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            if "<table" not in comment:
                continue
            hidden = BeautifulSoup(str(comment), self._parser)
            for table in hidden.select(table_selector):
                if table.get("id") not in seen:
                    seen.add(table.get("id"))
                    tables.append(table)
        return tables

    def _extract_table(
        self, table: Tag, table_id: str, row_field_selector: str, report: ExtractionReport
    ) -> None:
        tbody = table.find("tbody")
        if tbody is None:
            logger.warning("table '%s' has no <tbody>, skipping", table_id)
            return
        rows = tbody.find_all("tr", recursive=False)
        logger.debug("table '%s': %d candidate rows", table_id, len(rows))

        for row_index, row in enumerate(rows):
            if not self._is_data_row(row):
                continue
            try:
                record = self._extract_row(row, row_field_selector)
            except Exception as exc:  # noqa: BLE001
                error = ExtractionRowError(
                    table_id, row_index, f"{type(exc).__name__}: {exc}", str(row)[:ROW_SNIPPET_CHARS]
                )
                report.errors.append(error)
                logger.error("%s; markup: %s...", error, error.snippet)
                continue
            if record:
                report.records.append(record)

    def _is_data_row(self, row: Tag) -> bool:
        if self._skip_row_classes.intersection(row.get("class") or ()):
            return False
        children = row.find_all(True, recursive=False)
        header_cells = row.find_all("th", recursive=False)
        if children and len(header_cells) == len(children):
            return False
        return True

    def _extract_row(self, row: Tag, row_field_selector: str) -> RawRecord:
        record: RawRecord = {}
        for cell in row.select(row_field_selector):
            name = cell.get(self._field_attr)
            if not name:
                continue
            record[name] = self._coerce(name, cell)
        return record

    def _coerce(self, name: str, cell: Tag) -> Value:
        coercer = self._coercers.get(name)
        text = coercer(cell) if coercer is not None else cell.get_text().strip()
        if text == "" and self._zero_class in (cell.get("class") or ()):
            return 0.0
        if text and name not in self._categorical and is_number(text):
            return float(text)
        return text
