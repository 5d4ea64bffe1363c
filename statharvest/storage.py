from __future__ import annotations

import glob
import json
import logging
import os
import re
from typing import Dict, Iterable, List, Optional, Sequence

from .models import Frame, PeriodBatch, RawRecord

logger = logging.getLogger(__name__)


def sanitize_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE)


class JsonStorage:
    """Stores harvested batches and frames as JSON files.

    Files are overwritten on every run; there is no merge with earlier
    contents."""

    def __init__(self, directory: str) -> None:
        self._directory = directory

    def batch_path(self, source: str) -> str:
        return os.path.join(self._directory, f"{sanitize_name(source)}.json")

    def save_batches(self, source: str, batches: Iterable[PeriodBatch]) -> str:
        """Write one source's batches as {period: [records]} and return the path."""
        data: Dict[str, List[RawRecord]] = {}
        for batch in batches:
            data.setdefault(str(batch.period), []).extend(batch.records)
        path = self.batch_path(source)
        self._write_json(path, data)
        logger.info("saved %d periods for %s to %s", len(data), source, path)
        return path

    def load_batches(self, paths: Optional[Sequence[str]] = None) -> List[PeriodBatch]:
        """Read batch files back; unreadable files are logged and skipped."""
        if paths is None:
            paths = sorted(glob.glob(os.path.join(self._directory, "*.json")))
        batches: List[PeriodBatch] = []
        for path in paths:
            source = os.path.splitext(os.path.basename(path))[0]
            try:
                with open(path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                if not isinstance(raw, dict):
                    raise ValueError("expected an object keyed by period")
            except (OSError, ValueError) as exc:
                logger.error("error loading %s: %s", path, exc)
                continue
            for period, records in raw.items():
                if not isinstance(records, list):
                    logger.warning("%s: period %s is not a list, skipping", path, period)
                    continue
                batches.append(PeriodBatch(period=period, records=tuple(records), source=source))
            logger.info("loaded %d periods from %s", len(raw), path)
        return batches

    def save_frames(self, path: str, frames: Iterable[Frame]) -> str:
        payload = [frame.to_dict() for frame in frames]
        self._write_json(path, payload)
        logger.info("saved %d frames to %s", len(payload), path)
        return path

    @staticmethod
    def _write_json(path: str, payload: object) -> None:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
