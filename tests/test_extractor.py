"""Tests for the TableExtractor class."""

import unittest
from unittest import mock

from bs4 import BeautifulSoup

from statharvest.errors import ExtractionRowError, ExtractionTableError
from statharvest.extractor import TableExtractor, anchor_href, anchor_text, last_token
from statharvest.scrapers import FBREF_COERCERS

SUMMARY = "table.stats_table[id*='summary']"

MATCH_HTML = """
<html><body>
<table class="stats_table" id="stats_18bb7c10_summary">
  <thead><tr><th data-stat="player">Player</th><th data-stat="minutes">Min</th></tr></thead>
  <tbody>
    <tr>
      <th data-stat="player"><a href="/en/players/1/Bukayo-Saka">Bukayo Saka</a></th>
      <td data-stat="shirtnumber">7</td>
      <td data-stat="nationality"><a href="/en/country/ENG"><span>eng</span> ENG</a></td>
      <td data-stat="position">RW</td>
      <td data-stat="minutes">90</td>
      <td data-stat="goals">1</td>
      <td data-stat="assists" class="right iz"></td>
    </tr>
    <tr class="spacer"><td data-stat="player">spacer</td></tr>
    <tr class="thead"><th data-stat="player">Player</th></tr>
    <tr><th>Player</th><th>Min</th></tr>
    <tr><td>no stat cells</td></tr>
    <tr>
      <th data-stat="player">&nbsp;&nbsp;Leandro Trossard</th>
      <td data-stat="position">FW</td>
      <td data-stat="minutes">12</td>
      <td data-stat="goals">0</td>
      <td data-stat="passes_pct">85.7</td>
      <td data-stat="age">29-123</td>
    </tr>
  </tbody>
</table>
<table class="stats_table" id="stats_822bd0ba_summary">
  <tbody>
    <tr>
      <th data-stat="player"><a href="/en/players/2">Mohamed Salah</a></th>
      <td data-stat="position">RW</td>
      <td data-stat="minutes">90</td>
      <td data-stat="goals">2</td>
    </tr>
  </tbody>
</table>
<table class="stats_table" id="stats_18bb7c10_keeper">
  <tbody><tr><th data-stat="player">David Raya</th></tr></tbody>
</table>
</body></html>
"""


class TestCoercerHelpers(unittest.TestCase):
    """Verify the reusable cell coercers."""

    def _cell(self, html):
        return BeautifulSoup(html, "html.parser").find(["td", "th"])

    def test_anchor_text_prefers_link(self):
        self.assertEqual(anchor_text(self._cell('<td><a href="#"> Name </a> (c)</td>')), "Name")

    def test_anchor_text_falls_back_to_cell(self):
        self.assertEqual(anchor_text(self._cell("<td>  Plain  </td>")), "Plain")

    def test_last_token(self):
        self.assertEqual(last_token(self._cell('<td><a href="#">br BRA</a></td>')), "BRA")
        self.assertEqual(last_token(self._cell("<td></td>")), "")

    def test_anchor_href(self):
        self.assertEqual(anchor_href(self._cell('<td><a name="x">x</a><a href=" /en/a "> A </a></td>')), "/en/a")
        self.assertEqual(anchor_href(self._cell("<td>no link</td>")), "")


class TestTableExtractor(unittest.TestCase):
    """Verify row selection and field coercion."""

    def setUp(self):
        self.extractor = TableExtractor(coercers=FBREF_COERCERS)

    def test_extracts_data_rows_from_all_matching_tables(self):
        records = self.extractor.extract(MATCH_HTML, SUMMARY)
        self.assertEqual([r["player"] for r in records], ["Bukayo Saka", "Leandro Trossard", "Mohamed Salah"])

    def test_field_coercion(self):
        saka = self.extractor.extract(MATCH_HTML, SUMMARY)[0]
        self.assertEqual(saka["nationality"], "ENG")
        self.assertEqual(saka["position"], "RW")
        self.assertEqual(saka["minutes"], 90.0)
        self.assertIsInstance(saka["minutes"], float)
        self.assertEqual(saka["shirtnumber"], 7.0)
        # suppressed zero
        self.assertEqual(saka["assists"], 0)

    def test_non_numeric_text_is_kept(self):
        trossard = self.extractor.extract(MATCH_HTML, SUMMARY)[1]
        self.assertEqual(trossard["age"], "29-123")
        self.assertEqual(trossard["passes_pct"], 85.7)

    def test_categorical_fields_stay_text(self):
        extractor = TableExtractor(categorical_fields={"shirtnumber"})
        saka = extractor.extract(MATCH_HTML, SUMMARY)[0]
        self.assertEqual(saka["shirtnumber"], "7")

    def test_no_matching_tables_is_empty(self):
        self.assertEqual(self.extractor.extract(MATCH_HTML, "table[id*='passing']"), [])
        self.assertEqual(self.extractor.extract("", SUMMARY), [])

    def test_extraction_is_idempotent(self):
        self.assertEqual(
            self.extractor.extract(MATCH_HTML, SUMMARY),
            self.extractor.extract(MATCH_HTML, SUMMARY),
        )

    def test_accepts_parsed_soup_without_mutating_it(self):
        soup = BeautifulSoup(MATCH_HTML, "html.parser")
        before = str(soup)
        records = self.extractor.extract(soup, SUMMARY)
        self.assertEqual(len(records), 3)
        self.assertEqual(str(soup), before)

    def test_tables_without_id_or_tbody_are_skipped(self):
        html = """
        <table class="stats_table"><tbody><tr><td data-stat="player">A</td></tr></tbody></table>
        <table class="stats_table" id="x_summary"><tr><td data-stat="player">B</td></tr></table>
        """
        report = self.extractor.extract_report(html, "table.stats_table")
        self.assertEqual(report.tables_seen, 2)
        self.assertEqual(report.records, [])
        self.assertEqual(report.errors, [])


class TestTableExtractorErrors(unittest.TestCase):
    """Verify row and table failures are absorbed."""

    def test_bad_row_is_skipped_and_reported(self):
        def strict_player(cell):
            text = anchor_text(cell)
            if text == "Mohamed Salah":
                raise ValueError("unexpected player cell")
            return text

        extractor = TableExtractor(coercers={"player": strict_player})
        report = extractor.extract_report(MATCH_HTML, SUMMARY)
        self.assertEqual([r["player"] for r in report.records], ["Bukayo Saka", "Leandro Trossard"])
        self.assertEqual(len(report.errors), 1)
        error = report.errors[0]
        self.assertIsInstance(error, ExtractionRowError)
        self.assertEqual(error.table_id, "stats_822bd0ba_summary")
        self.assertEqual(error.row_index, 0)
        self.assertLessEqual(len(error.snippet), 200)

    def test_table_failure_moves_to_next_table(self):
        extractor = TableExtractor()
        with mock.patch.object(TableExtractor, "_is_data_row", side_effect=RuntimeError("broken")):
            report = extractor.extract_report(MATCH_HTML, SUMMARY)
        self.assertEqual(report.records, [])
        self.assertEqual(len(report.errors), 2)
        self.assertTrue(all(isinstance(e, ExtractionTableError) for e in report.errors))


class TestCommentedTables(unittest.TestCase):
    """Verify tables hidden inside HTML comments."""

    HTML = """
    <div id="all_stats_misc">
    <!--
    <table class="stats_table" id="stats_misc_summary"><tbody>
      <tr><th data-stat="player">Hidden Player</th><td data-stat="goals">3</td></tr>
    </tbody></table>
    -->
    </div>
    """

    def test_comments_ignored_by_default(self):
        self.assertEqual(TableExtractor().extract(self.HTML, SUMMARY), [])

    def test_comments_searched_when_enabled(self):
        records = TableExtractor(search_comments=True).extract(self.HTML, SUMMARY)
        self.assertEqual(records, [{"player": "Hidden Player", "goals": 3.0}])


if __name__ == "__main__":
    unittest.main()
