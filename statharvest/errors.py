from __future__ import annotations

from typing import Optional


class StatHarvestError(Exception):
    """Base exception for the harvester."""


class FetchError(StatHarvestError):
    """A logical fetch failed.

    ``permanent`` tells the caller whether trying the same URL again later
    can possibly help.
    """

    permanent = False

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{message}: {url}")
        self.url = url
        self.status_code = status_code


class PermanentFetchError(FetchError):
    """The upstream rejected the request (4xx other than 404/429)."""

    permanent = True


class NotFoundError(PermanentFetchError):
    """The resource does not exist (404/410)."""


class TransientFetchError(FetchError):
    """Retries were exhausted on rate-limit, server or network failures."""

    def __init__(
        self,
        url: str,
        message: str,
        status_code: Optional[int] = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(url, message, status_code)
        self.attempts = attempts


class ExtractionError(StatHarvestError):
    def __init__(self, table_id: str, message: str, snippet: str = "") -> None:
        super().__init__(f"table '{table_id}': {message}")
        self.table_id = table_id
        self.snippet = snippet


class ExtractionRowError(ExtractionError):
    """A single row could not be turned into a record."""

    def __init__(self, table_id: str, row_index: int, message: str, snippet: str = "") -> None:
        super().__init__(table_id, f"row #{row_index}: {message}", snippet)
        self.row_index = row_index


class ExtractionTableError(ExtractionError):
    """A whole table failed; its remaining rows were skipped."""


class ConfigurationError(StatHarvestError, ValueError):
    """Invalid weights, filters or scheduler settings."""


class SchedulerCancelled(StatHarvestError):
    """The cancellation token was set while waiting for a request slot."""
