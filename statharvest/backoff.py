from __future__ import annotations

import random
from typing import Optional


class BackoffStrategy:
    """Exponential backoff with jitter for retry delays.

    Computes sleep duration as base * factor^(attempt-1) plus random jitter
    of up to ``jitter_ratio`` of that delay, so concurrent callers do not
    retry in lockstep. The result never exceeds max_seconds."""

    def __init__(
        self,
        base_seconds: float = 1.0,
        max_seconds: float = 60.0,
        factor: float = 2.0,
        jitter_ratio: float = 0.1,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._base = base_seconds
        self._max = max_seconds
        self._factor = factor
        self._jitter_ratio = jitter_ratio
        self._rng = rng or random.Random()

    def get_sleep(self, attempt: int, error_type: Optional[str] = None) -> float:
        """Calculate the backoff sleep duration in seconds for a given retry attempt."""
        exp = min(self._max, self._base * (self._factor ** max(attempt - 1, 0)))
        jitter = self._rng.uniform(0, exp * self._jitter_ratio)
        return min(self._max, exp + jitter)
