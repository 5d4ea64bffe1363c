"""Tests for the data model dataclasses."""

import dataclasses
import unittest

from statharvest.models import Frame, FrameEntry, PeriodBatch, ScheduleSlot, Task


class TestFrozenModels(unittest.TestCase):
    """Verify value types cannot be mutated after creation."""

    def test_task_is_frozen(self):
        task = Task(task_id="t1", source_id="Premier League", url="https://example.com")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            task.url = "https://other.example.com"
        self.assertEqual(task.meta, {})

    def test_slot_is_frozen(self):
        slot = ScheduleSlot(issued_at=1.0)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            slot.completed_at = 2.0

    def test_period_batch_defaults(self):
        batch = PeriodBatch(period=3)
        self.assertEqual(batch.records, ())
        self.assertEqual(batch.source, "")


class TestFrame(unittest.TestCase):
    """Verify frame labels and serialization."""

    def setUp(self):
        self.entries = (
            FrameEntry(name="A", value=3.0, position="FW", exposure=180.0, appearances=2, cumulative=3.0),
            FrameEntry(name="B", value=1.0, position=None),
        )

    def test_label(self):
        self.assertEqual(Frame(period=7).label, "MD7")

    def test_cumulative_frame_omits_exposure(self):
        frame = Frame(period=1, entries=self.entries)
        self.assertEqual(
            frame.to_dict(),
            {
                "period": "MD1",
                "data": [
                    {"name": "A", "value": 3.0, "position": "FW"},
                    {"name": "B", "value": 1.0, "position": None},
                ],
            },
        )

    def test_normalized_frame_includes_exposure(self):
        frame = Frame(period=2, entries=self.entries[:1], normalized=True)
        self.assertEqual(
            frame.to_dict()["data"],
            [{"name": "A", "value": 3.0, "position": "FW", "exposure": 180.0, "appearances": 2, "cumulative": 3.0}],
        )

    def test_empty_frame(self):
        self.assertEqual(Frame(period=4).to_dict(), {"period": "MD4", "data": []})


if __name__ == "__main__":
    unittest.main()
