"""Bounded exponential-backoff retry for async operations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Deterministic backoff schedule (no jitter), delays in seconds."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    factor: float = 2.0


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    factor: float = 2.0,
    sleep: Optional[SleepFn] = None,
) -> T:
    """Await *operation* until it succeeds or *max_attempts* are used up.

    Between attempts the coroutine sleeps for *initial_delay*, then that
    delay times *factor*, and so on, never longer than *max_delay*.  The
    last failure is re-raised unchanged.  Cancellation is never retried.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    sleep = sleep or asyncio.sleep

    delay = min(initial_delay, max_delay)
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt == max_attempts:
                logger.warning(
                    "Attempt %d/%d failed, giving up: %s", attempt, max_attempts, exc
                )
                raise
            logger.warning(
                "Attempt %d/%d failed, retrying in %.1fs: %s",
                attempt,
                max_attempts,
                delay,
                exc,
            )
        await sleep(delay)
        delay = min(delay * factor, max_delay)

    raise AssertionError("unreachable")


async def retry_with_policy(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Optional[SleepFn] = None,
) -> T:
    """:func:`retry_with_backoff` driven by a :class:`RetryPolicy`."""
    return await retry_with_backoff(
        operation,
        max_attempts=policy.max_attempts,
        initial_delay=policy.initial_delay,
        max_delay=policy.max_delay,
        factor=policy.factor,
        sleep=sleep,
    )
