"""Retry and backoff policy for requests to the blob service.

Transient failures (throttling, server errors and transport errors) are
retried with capped, jittered exponential backoff. A ``Retry-After``
header from the service takes precedence over the computed delay.
"""

import random
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)


class RetryConfig(BaseModel):
    """Retry configuration for the transport client."""

    max_retries: int = Field(default=10, ge=0)
    retry_timeout: float = Field(
        default=180.0,
        gt=0.0,
        description="Total time in seconds after which no further retry is attempted"
    )
    init_backoff: float = Field(default=0.1, gt=0.0)
    max_backoff: float = Field(default=15.0, gt=0.0)
    backoff_base: float = Field(default=2.0, ge=1.0)

    model_config = ConfigDict(frozen=True)


class Backoff:
    """Jittered exponential backoff.

    Each delay is drawn uniformly between ``init_backoff`` and the previous
    delay times ``backoff_base``, capped at ``max_backoff``.
    """

    def __init__(self, config: RetryConfig, rng: Optional[random.Random] = None):
        self.config = config
        self._next = config.init_backoff
        self._random = rng or random.Random()

    def next(self) -> float:
        """Return the delay to wait before the next attempt."""
        delay = self._next
        upper = min(self.config.max_backoff, delay * self.config.backoff_base)
        if upper <= self.config.init_backoff:
            self._next = upper
        else:
            self._next = self._random.uniform(self.config.init_backoff, upper)
        return min(delay, self.config.max_backoff)


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds.

    HTTP-date values are ignored and the computed backoff is used instead.
    """
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None
