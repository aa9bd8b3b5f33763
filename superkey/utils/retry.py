from __future__ import annotations

import asyncio
from dataclasses import dataclass
from http import HTTPStatus

# 4xx responses worth another attempt.
RETRYABLE_CLIENT_ERRORS = frozenset(
    {HTTPStatus.REQUEST_TIMEOUT, HTTPStatus.TOO_MANY_REQUESTS}
)


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def is_retryable_status(status_code: int) -> bool:
    """Return ``False`` for caller errors that will not go away on retry."""
    if is_success(status_code):
        return False
    if 400 <= status_code < 500:
        return status_code in RETRYABLE_CLIENT_ERRORS
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry policy."""

    max_attempts: int = 3
    delay: float = 1.0

    def attempts(self) -> range:
        return range(1, max(1, self.max_attempts) + 1)

    def is_last(self, attempt: int) -> bool:
        return attempt >= max(1, self.max_attempts)


async def schedule_retry(delay: float) -> None:
    """Sleep before the next attempt."""
    if delay > 0:
        await asyncio.sleep(delay)
