"""Retry provider calls with exponential backoff and jitter.

Only ``TransportError`` instances flagged ``retryable`` (HTTP 429, 5xx,
timeouts, network failures) are retried. Anything else propagates on the
first attempt.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from spendwise.classifier.errors import TransportError
from spendwise.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Attributes:
    max_attempts: Total attempts including the first one
    initial_delay_seconds: Delay before the first retry
    max_delay_seconds: Upper bound for any single delay
    exponential_base: Multiplier applied per attempt
    jitter: Scale each delay by a random factor in [0.5, 1.5)
    """

    max_attempts: int = 3
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryConfig:
        return cls(
            max_attempts=max(1, settings.LLM_MAX_ATTEMPTS),
            initial_delay_seconds=settings.LLM_BACKOFF_BASE_SECONDS,
            max_delay_seconds=settings.LLM_BACKOFF_MAX_SECONDS,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after the zero-based ``attempt`` failed."""
        delay = min(
            self.initial_delay_seconds * (self.exponential_base**attempt),
            self.max_delay_seconds,
        )
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    on_attempt: Callable[[int], None] | None = None,
) -> T:
    """Await ``func()`` until it succeeds or a final failure is reached.

    ``on_attempt`` is called with the one-based attempt number before each
    call so callers can report how many attempts were made.
    """
    for attempt in range(config.max_attempts):
        if on_attempt is not None:
            on_attempt(attempt + 1)
        try:
            return await func()
        except TransportError as exc:
            if not exc.retryable:
                raise
            if attempt == config.max_attempts - 1:
                logger.warning(
                    "All %d attempts failed, last error: %s",
                    config.max_attempts,
                    exc,
                )
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d failed: %s. Retrying in %.2fs",
                attempt + 1,
                config.max_attempts,
                exc,
                delay,
            )
            await asyncio.sleep(delay)

    raise RuntimeError("retry_with_backoff called with max_attempts < 1")
