"""Tests for YAML configuration loading."""

import os
import tempfile
import textwrap
import unittest

from statharvest.aggregation import ValueType
from statharvest.config import DEFAULT_LEAGUES, HarvestConfig, build_config, load_config
from statharvest.errors import ConfigurationError


class TestLoadConfig(unittest.TestCase):
    """Verify config files are read and validated."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    def _write(self, text):
        path = os.path.join(self._tmp.name, "statharvest.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write(textwrap.dedent(text))
        return path

    def test_missing_file_uses_defaults(self):
        config = load_config(os.path.join(self._tmp.name, "missing.yaml"))
        self.assertEqual(config, HarvestConfig())
        self.assertEqual(len(config.leagues), 5)

    def test_empty_file_uses_defaults(self):
        self.assertEqual(load_config(self._write("")), HarvestConfig())

    def test_full_file(self):
        path = self._write(
            """
            scheduler:
              max_requests: 20
              window_secs: 60
            fetcher:
              max_attempts: 3
              impersonate: chrome
            leagues:
              - name: Premier League
                url: https://fbref.com/en/comps/9/schedule
            aggregation:
              fields: {goals: 1, assists: 1}
              value_type: per_exposure
              minimum_exposure: 180
              output_size: 20
            data_dir: cache
            """
        )
        config = load_config(path)
        self.assertEqual(config.scheduler.max_requests, 20)
        self.assertEqual(config.fetcher.max_attempts, 3)
        self.assertEqual(config.fetcher.impersonate, "chrome")
        self.assertEqual([l.name for l in config.leagues], ["Premier League"])
        self.assertEqual(ValueType.parse(config.aggregation.value_type), ValueType.PER_EXPOSURE)
        self.assertEqual(config.aggregation.minimum_exposure, 180)
        self.assertEqual(config.data_dir, "cache")
        self.assertEqual(config.frames_path, "output/frames.json")

    def test_invalid_yaml(self):
        with self.assertRaises(ConfigurationError):
            load_config(self._write("scheduler: [unclosed"))


class TestBuildConfig(unittest.TestCase):
    """Verify bad sections fail fast."""

    def test_defaults(self):
        self.assertEqual(build_config({}).leagues, DEFAULT_LEAGUES)

    def test_invalid_sections(self):
        cases = [
            {"unknown": 1},
            {"scheduler": {"max_request": 10}},
            {"fetcher": "fast"},
            {"leagues": [{"name": "No URL"}]},
            {"leagues": "Premier League"},
            {"aggregation": {"output_size": 0}},
            {"aggregation": {"value_type": "median"}},
            {"scheduler": {"max_requests": 0}},
            {"scheduler": {"max_requests": "ten"}},
            {"scheduler": {"window_secs": -1}},
            {"scheduler": {"buffer_secs": 0.01}},
            {"fetcher": {"max_attempts": 0}},
            {"fetcher": {"timeout": "slow"}},
            {"fetcher": {"impersonate": 120}},
            {"aggregation": {"presets": ["vibes"]}},
            {"aggregation": {"presets": []}},
        ]
        for raw in cases:
            with self.subTest(raw=raw):
                with self.assertRaises(ConfigurationError):
                    build_config(raw)

    def test_presets_expand_to_weights(self):
        config = build_config({"aggregation": {"presets": ["goal_contribution", "negative_impact"]}})
        self.assertEqual(
            config.aggregation.fields,
            {"goals": 1.0, "assists": 1.0, "cards_yellow": -5.0, "cards_red": -20.0},
        )

    def test_explicit_fields_override_presets(self):
        raw = {"aggregation": {"presets": "goal_contribution", "fields": {"goals": 3, "tackles": 1}}}
        self.assertEqual(
            build_config(raw).aggregation.fields,
            {"goals": 3.0, "assists": 1.0, "tackles": 1.0},
        )

    def test_root_must_be_mapping(self):
        with self.assertRaises(ConfigurationError):
            build_config(["scheduler"])


if __name__ == "__main__":
    unittest.main()
