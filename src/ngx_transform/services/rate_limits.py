"""Daily rate limits guarding session creation."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from ngx_transform.domain.errors import RateLimitExceeded
from ngx_transform.domain.models import utcnow

logger = logging.getLogger(__name__)


class RateLimitRepository(Protocol):
    """Persistence interface for daily counters."""

    def get_count(self, key: str) -> int | None:
        """Return the counter value, or None when the row does not exist."""

    def save_count(self, key: str, count: int, identifier: str, day: str) -> None:
        """Create or overwrite a counter row."""

    def compare_and_set_count(self, key: str, expected: int, count: int) -> bool:
        """Write count only if the stored value still equals expected."""


def rate_limit_key(identifier: str, day: date) -> str:
    """Build the per-day counter key."""
    return f"{identifier}-{day.isoformat()}"


@dataclass
class RateLimiter:
    """Per-identifier daily counter with compensating release."""

    repository: RateLimitRepository
    limit: int
    message: str
    clock: Callable[[], datetime] = utcnow
    max_release_attempts: int = 5

    def acquire(self, identifier: str) -> str:
        """Count one use for today and return the counter key.

        Read and increment are separate calls, so concurrent requests can
        overshoot the limit slightly.
        """
        day = self.clock().date()
        key = rate_limit_key(identifier, day)
        current = self.repository.get_count(key) or 0
        if current >= self.limit:
            raise RateLimitExceeded(self.message)
        self.repository.save_count(key, current + 1, identifier, day.isoformat())
        return key

    def release(self, key: str) -> None:
        """Undo one acquire, never going below zero."""
        for _ in range(self.max_release_attempts):
            current = self.repository.get_count(key)
            if current is None:
                return
            if self.repository.compare_and_set_count(key, current, max(0, current - 1)):
                return
        logger.warning("Gave up releasing rate limit", extra={"key": key})
