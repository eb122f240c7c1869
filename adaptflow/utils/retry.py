from __future__ import annotations

import asyncio
import random

from ..constants import DEFAULT_BACKOFF_MULTIPLIER, DEFAULT_RETRY_BASE_DELAY


def compute_backoff(
    attempt: int,
    multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    base_delay: float = DEFAULT_RETRY_BASE_DELAY,
    jitter: float = 0.0,
) -> float:
    """Compute exponential backoff in seconds for a 0-indexed attempt."""
    delay = base_delay * multiplier ** attempt
    if jitter:
        delay += random.uniform(0, jitter)
    return delay


async def schedule_retry(
    attempt: int,
    multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    base_delay: float = DEFAULT_RETRY_BASE_DELAY,
) -> float:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt, multiplier=multiplier, base_delay=base_delay)
    await asyncio.sleep(delay)
    return delay
