"""Fixed-delay retry for transient Gemini failures."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OVERLOADED_TEXT = re.compile(r"\b503\b|\boverloaded\b|\bunavailable\b", re.IGNORECASE)


def is_overloaded(exc: Exception) -> bool:
    """True when *exc* is Gemini's "model overloaded" signal (HTTP 503 / UNAVAILABLE).

    API errors that carry a code or status are judged on those alone; the
    message text is only consulted for exceptions without either.
    """
    code = getattr(exc, "code", None)
    status = getattr(exc, "status", None)
    if isinstance(code, int) or status:
        return code == 503 or str(status or "").upper() == "UNAVAILABLE"
    return bool(_OVERLOADED_TEXT.search(str(exc)))


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to call, how long to wait between calls, and which errors qualify."""

    max_attempts: int = 3
    delay_seconds: float = 5.0
    is_retryable: Callable[[Exception], bool] = is_overloaded


class RetryExhaustedError(Exception):
    """Every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempt(s): {last_error}")


async def with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
) -> T:
    """Execute an async callable, retrying retryable failures with a fixed delay.

    Args:
        coro_factory: Zero-arg callable that returns a fresh awaitable each attempt.
        policy: Attempt budget, delay and retryable predicate. Defaults to
            3 attempts, 5 s apart, retrying only overloaded errors.

    Returns:
        The result of the first successful call.

    Raises:
        RetryExhaustedError: When every attempt failed with a retryable error.
        Exception: The original error, unchanged, when it is not retryable.
    """
    policy = policy or RetryPolicy()
    if policy.max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await coro_factory()
        except Exception as exc:
            if not policy.is_retryable(exc):
                raise
            if attempt == policy.max_attempts:
                raise RetryExhaustedError(attempt, exc) from exc
            logger.warning(
                "Retry %d/%d after %.1fs: %s",
                attempt, policy.max_attempts, policy.delay_seconds, exc,
            )
            await asyncio.sleep(policy.delay_seconds)
    raise AssertionError("unreachable")
