"""
Retry Policy: Exponential Backoff with Jitter

Implements the retry strategy of conditional metadata writes:
- Exponential backoff: base_delay × 2^n, capped
- Full jitter: random(0, backoff) so racing writers spread out
- Only the declared retryable exceptions are retried; anything else
  propagates to the caller unchanged

Timeout tiers: Request (per attempt), Global (all attempts)
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Type, TypeVar

from objectgate.core import constants as C
from objectgate.core.errors import ConcurrentModificationError
from objectgate.core.types import Err, Ok, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry configuration."""

    max_retries: int = 3
    base_delay_ms: int = 100
    max_delay_ms: int = 10000
    exponential_base: float = 2.0
    jitter: bool = True  # Full jitter
    retryable_exceptions: tuple[Type[BaseException], ...] = (ConcurrentModificationError,)

    # Timeout tiers (None disables)
    request_timeout_s: Optional[float] = 30.0
    global_timeout_s: Optional[float] = 60.0

    @classmethod
    def default(cls) -> RetryPolicy:
        """Default retry policy."""
        return cls()

    @classmethod
    def no_retry(cls) -> RetryPolicy:
        """Single attempt."""
        return cls(max_retries=0)

    @classmethod
    def for_conditional_writes(cls, max_retries: int = C.POLICY_WRITE_RETRIES) -> RetryPolicy:
        """Short delays: a lost race is usually resolved on the next read."""
        return cls(
            max_retries=max_retries,
            base_delay_ms=C.POLICY_WRITE_BASE_DELAY_MS,
            max_delay_ms=C.POLICY_WRITE_MAX_DELAY_MS,
        )


@dataclass
class RetryStats:
    """Retry attempt statistics."""
    total_attempts: int = 0
    successful_attempts: int = 0
    failed_attempts: int = 0
    total_delay_ms: float = 0.0
    last_error: Optional[BaseException] = None
    timed_out: bool = False


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
) -> Result[T, RetryStats]:
    """
    Execute async function with retry and exponential backoff.

    Args:
        func: Async function to execute; called once per attempt.
        policy: Retry configuration (default if None).

    Returns:
        Ok with result, or Err with the attempt statistics after
        exhausting retries (or the global deadline).

    Raises:
        Any exception not listed in `policy.retryable_exceptions`, on the
        attempt that raised it.
    """
    if policy is None:
        policy = RetryPolicy.default()

    stats = RetryStats()
    global_deadline = (
        time.monotonic() + policy.global_timeout_s
        if policy.global_timeout_s is not None
        else None
    )

    for attempt in range(policy.max_retries + 1):
        # Check global timeout
        if global_deadline is not None and time.monotonic() >= global_deadline:
            stats.timed_out = True
            return Err(stats)

        stats.total_attempts += 1
        try:
            if policy.request_timeout_s is not None:
                result = await asyncio.wait_for(func(), timeout=policy.request_timeout_s)
            else:
                result = await func()
            stats.successful_attempts += 1
            return Ok(result)

        except asyncio.TimeoutError as e:
            stats.failed_attempts += 1
            stats.last_error = e
            logger.debug(f"Attempt {attempt + 1} timed out")

        except policy.retryable_exceptions as e:
            stats.failed_attempts += 1
            stats.last_error = e
            logger.debug(f"Attempt {attempt + 1} failed: {e}")

        # Calculate backoff delay
        if attempt < policy.max_retries:
            delay = calculate_backoff(
                attempt=attempt,
                base_delay_ms=policy.base_delay_ms,
                max_delay_ms=policy.max_delay_ms,
                exponential_base=policy.exponential_base,
                jitter=policy.jitter,
            )
            stats.total_delay_ms += delay

            logger.debug(f"Retrying in {delay:.1f}ms (attempt {attempt + 2})")
            await asyncio.sleep(delay / 1000)

    return Err(stats)


def calculate_backoff(
    attempt: int,
    base_delay_ms: int,
    max_delay_ms: int,
    exponential_base: float,
    jitter: bool,
) -> float:
    """
    Calculate backoff delay with optional jitter.

    Full jitter: random(0, min(cap, base * 2^attempt))
    """
    # Exponential delay
    delay = min(max_delay_ms, base_delay_ms * (exponential_base ** attempt))

    # Full jitter
    if jitter:
        delay = random.uniform(0, delay)

    return delay
