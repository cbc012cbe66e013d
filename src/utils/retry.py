"""Retry policy shared by the upstream API clients.

A policy is a value: how many attempts, how long to wait after a failed
attempt, and which sleep to use. The operation receives the 1-based attempt
number so callers can vary what they do per attempt (for example fall back to
another model).
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Backoff = Callable[[int], float]
Sleep = Callable[[float], Awaitable[None]]


class RetryableError(Exception):
    """Base class for transient upstream failures."""

    pass


class APIRateLimitError(RetryableError):
    """Upstream API answered with a rate limit / quota error."""

    pass


class NetworkError(RetryableError):
    """Connection-level failure talking to an upstream API."""

    pass


def fixed_backoff(seconds: float) -> Backoff:
    """Wait the same amount after every failed attempt."""
    return lambda attempt: seconds


def linear_backoff(step_seconds: float) -> Backoff:
    """Wait ``attempt * step_seconds`` after failed attempt number ``attempt``."""
    return lambda attempt: attempt * step_seconds


class RetryPolicy:
    """Run an async operation up to ``max_attempts`` times."""

    def __init__(
        self,
        max_attempts: int = 3,
        backoff: Optional[Backoff] = None,
        sleep: Optional[Sleep] = None,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        name: str = "operation",
    ):
        """Initialize retry policy.

        Args:
            max_attempts: Total attempts including the first one (minimum 1)
            backoff: Delay in seconds after a failed attempt; no delay if None
            sleep: Async sleep callable (asyncio.sleep by default, injectable for tests)
            retry_on: Exception types that trigger another attempt
            name: Label used in log messages
        """
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff or fixed_backoff(0.0)
        self.sleep = sleep or asyncio.sleep
        self.retry_on = retry_on
        self.name = name

    def with_attempts(self, max_attempts: int) -> "RetryPolicy":
        """Copy of this policy with a different attempt count."""
        return RetryPolicy(
            max_attempts=max_attempts,
            backoff=self.backoff,
            sleep=self.sleep,
            retry_on=self.retry_on,
            name=self.name,
        )

    async def run(self, operation: Callable[[int], Awaitable[T]]) -> T:
        """Await ``operation(attempt)`` until it succeeds or attempts run out.

        Args:
            operation: Async callable receiving the 1-based attempt number

        Returns:
            The first successful result

        Raises:
            The exception of the last attempt when every attempt fails
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation(attempt)
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    logger.error(
                        f"{self.name} failed after {self.max_attempts} attempt(s): {e}"
                    )
                    raise
                delay = self.backoff(attempt)
                logger.warning(
                    f"{self.name} attempt {attempt}/{self.max_attempts} failed: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                if delay > 0:
                    await self.sleep(delay)
        raise RuntimeError("unreachable")  # pragma: no cover
