from __future__ import annotations

import json
import logging
import random
import time
from typing import Any, Callable, Mapping, Optional, Sequence

import requests
from curl_cffi import CurlError
from curl_cffi import requests as curl_requests

from .backoff import BackoffStrategy
from .errors import NotFoundError, PermanentFetchError, TransientFetchError
from .metrics import MetricsCollector
from .models import FetchAttempt
from .profiles import DEFAULT_PROFILES

logger = logging.getLogger(__name__)

OK = "ok"
NOT_FOUND = "not_found"
PERMANENT = "permanent"
TRANSIENT = "transient"

NOT_FOUND_STATUSES = frozenset({404, 410})
RATE_LIMIT_STATUS = 429

# Malformed requests; retrying cannot fix them.
INVALID_REQUEST_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidHeader,
)

# Network-level failures from either transport: timeouts, resets, DNS.
TRANSPORT_ERRORS = (requests.RequestException, CurlError)


def classify_status(status_code: int) -> str:
    """Map an HTTP status onto ok / not_found / permanent / transient."""
    if status_code in NOT_FOUND_STATUSES:
        return NOT_FOUND
    if status_code == RATE_LIMIT_STATUS or status_code >= 500:
        return TRANSIENT
    if 400 <= status_code < 500:
        return PERMANENT
    return OK


class ResilientFetcher:
    """Fetches one URL as text with rotating headers and bounded retries.

    Each attempt picks a header profile at random. 404/410, other 4xx
    (except 429) and malformed URLs or headers fail immediately; 429, 5xx
    and transport errors are retried with exponential backoff until
    ``max_attempts`` is spent.

    Pacing is not done here; wrap calls in RequestScheduler.execute()."""

    def __init__(
        self,
        profiles: Sequence[Mapping[str, str]] = DEFAULT_PROFILES,
        backoff: Optional[BackoffStrategy] = None,
        max_attempts: int = 5,
        timeout: float = 30,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[Any] = None,
        impersonate: Optional[str] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        if not profiles:
            raise ValueError("at least one header profile is required")
        self._profiles = tuple(profiles)
        self._rng = rng or random.Random()
        self._backoff = backoff or BackoffStrategy(rng=self._rng)
        self._max_attempts = max(1, max_attempts)
        self._timeout = timeout
        self._sleep = sleep
        self._session = session if session is not None else _build_session(impersonate)
        self._metrics = metrics

    def fetch(self, url: str) -> str:
        """Return the body of ``url`` or raise a FetchError subclass."""
        attempt = 0
        last_status: Optional[int] = None
        last_error = ""
        while True:
            attempt += 1
            headers = dict(self._rng.choice(self._profiles))
            logger.debug("fetch attempt %d for %s as %s", attempt, url, headers.get("User-Agent"))
            start = time.monotonic()
            try:
                response = self._session.get(url, headers=headers, timeout=self._timeout)
            except INVALID_REQUEST_ERRORS as exc:
                self._record(url, attempt, start, None, type(exc).__name__)
                logger.error("invalid request for %s, giving up: %s", url, exc)
                raise PermanentFetchError(url, f"Invalid request ({type(exc).__name__}: {exc})") from exc
            except TRANSPORT_ERRORS as exc:
                last_status = None
                last_error = f"{type(exc).__name__}: {exc}"
                self._record(url, attempt, start, None, type(exc).__name__)
            else:
                status = int(response.status_code)
                kind = classify_status(status)
                self._record(url, attempt, start, status, None if kind == OK else f"HTTP_{status}")
                if kind == OK:
                    logger.info("fetched %s with status %d", url, status)
                    return response.text
                if kind == NOT_FOUND:
                    logger.error("%d Not Found for %s, giving up", status, url)
                    raise NotFoundError(url, f"{status} Not Found", status)
                if kind == PERMANENT:
                    logger.error("permanent client error %d for %s, giving up", status, url)
                    raise PermanentFetchError(url, f"Permanent client error {status}", status)
                last_status = status
                last_error = f"HTTP {status}"

            if attempt >= self._max_attempts:
                logger.error("failed to fetch %s after %d attempts: %s", url, attempt, last_error)
                raise TransientFetchError(
                    url,
                    f"Failed after {attempt} attempts ({last_error})",
                    status_code=last_status,
                    attempts=attempt,
                )
            delay = self._backoff.get_sleep(attempt, last_error)
            logger.warning(
                json.dumps(
                    {
                        "event": "fetch_retry",
                        "url": url,
                        "attempt": attempt,
                        "error": last_error,
                        "sleep_ms": int(delay * 1000),
                    }
                )
            )
            self._sleep(delay)

    def close(self) -> None:
        close = getattr(self._session, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "ResilientFetcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _record(
        self,
        url: str,
        attempt: int,
        start: float,
        status_code: Optional[int],
        error_type: Optional[str],
    ) -> None:
        if not self._metrics:
            return
        self._metrics.record_attempt(
            FetchAttempt(
                url=url,
                attempt=attempt,
                success=error_type is None,
                status_code=status_code,
                latency_ms=int((time.monotonic() - start) * 1000),
                error_type=error_type,
            )
        )


def _build_session(impersonate: Optional[str]) -> Any:
    if impersonate:
        # curl_cffi reproduces a real browser TLS fingerprint
        return curl_requests.Session(impersonate=impersonate)
    return requests.Session()
