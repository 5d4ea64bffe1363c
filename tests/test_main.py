"""Tests for the command-line entry point."""

import os
import tempfile
import unittest
from unittest import mock

import main
from statharvest.errors import SchedulerCancelled


class TestMain(unittest.TestCase):
    """Verify config errors and interrupts end the run cleanly."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.missing_config = os.path.join(self._tmp.name, "missing.yaml")

    def _write_config(self, text):
        path = os.path.join(self._tmp.name, "statharvest.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_invalid_scheduler_config_is_a_usage_error(self):
        path = self._write_config("scheduler:\n  max_requests: 0\n")
        with mock.patch.object(main, "run_harvest") as run_harvest, mock.patch("sys.stderr"):
            with self.assertRaises(SystemExit) as ctx:
                main.main(["harvest", "--config", path])
        self.assertEqual(ctx.exception.code, 2)
        run_harvest.assert_not_called()

    def test_keyboard_interrupt_exits_cleanly(self):
        with mock.patch.object(main, "run_harvest", side_effect=KeyboardInterrupt):
            with self.assertLogs("statharvest", level="WARNING") as logs:
                main.main(["harvest", "--config", self.missing_config])
        self.assertTrue(any("interrupted" in line for line in logs.output))

    def test_cancelled_scheduler_skips_aggregation(self):
        with mock.patch.object(main, "run_harvest", side_effect=SchedulerCancelled("stop")), \
                mock.patch.object(main, "run_aggregate") as run_aggregate:
            with self.assertLogs("statharvest", level="WARNING"):
                main.main(["run", "--config", self.missing_config])
        run_aggregate.assert_not_called()

    def test_run_invokes_both_stages(self):
        with mock.patch.object(main, "run_harvest") as run_harvest, \
                mock.patch.object(main, "run_aggregate") as run_aggregate:
            main.main(["run", "--config", self.missing_config, "--max-matches", "3"])
        self.assertEqual(run_harvest.call_args.args[2], 3)
        run_aggregate.assert_called_once()


if __name__ == "__main__":
    unittest.main()
