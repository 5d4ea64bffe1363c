from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from .errors import FetchError
from .extractor import TableExtractor
from .fetcher import ResilientFetcher
from .models import ScrapeResult, Task
from .scheduler import RequestScheduler

logger = logging.getLogger(__name__)


class PageScraper(ABC):
    """Abstract base class defining the fetch-then-extract pipeline for one page.

    - Fetches go through the scheduler when one is given, so every request
      is paced and counted against the budget, failures included.
    - Fetch failures become a failed ScrapeResult instead of propagating,
      so one bad page never aborts its siblings.
    - Parse failures keep the error type in the result data.
    """

    TABLE_SELECTOR: str = ""

    def __init__(
        self,
        fetcher: ResilientFetcher,
        scheduler: Optional[RequestScheduler] = None,
        extractor: Optional[TableExtractor] = None,
    ) -> None:
        self._fetcher = fetcher
        self._scheduler = scheduler
        self._extractor = extractor or self.default_extractor()

    def run(self, task: Task) -> ScrapeResult:
        start_ms = self._now_ms()
        try:
            self.validate(task)
            body = self.fetch(task)
        except (FetchError, ValueError) as exc:
            logger.error("%s: failed to fetch %s: %s", type(self).__name__, task.url, exc)
            return self._result(task, start_ms, success=False, data=None, error_type=type(exc).__name__)

        try:
            parsed = self.parse(body, task)
        except Exception as parse_exc:  # noqa: BLE001
            logger.exception("%s: failed to parse %s", type(self).__name__, task.url)
            return self._result(
                task,
                start_ms,
                success=False,
                data={"parse_error": type(parse_exc).__name__},
                error_type=type(parse_exc).__name__,
            )
        return self._result(task, start_ms, success=True, data=parsed, error_type=None)

    def validate(self, task: Task) -> None:
        if not task.url:
            raise ValueError("task.url is required")

    def fetch(self, task: Task) -> str:
        if self._scheduler is None:
            return self._fetcher.fetch(task.url)
        return self._scheduler.execute(lambda: self._fetcher.fetch(task.url))

    def default_extractor(self) -> TableExtractor:
        return TableExtractor()

    @abstractmethod
    def parse(self, body: str, task: Task) -> Any:
        ...

    def _result(
        self, task: Task, start_ms: int, success: bool, data: Any, error_type: Optional[str]
    ) -> ScrapeResult:
        return ScrapeResult(
            task_id=task.task_id,
            source_id=task.source_id,
            url=task.url,
            success=success,
            latency_ms=self._now_ms() - start_ms,
            data=data,
            error_type=error_type,
        )

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)
