"""Backoff used while establishing the broker connection.

`exponential_backoff` yields the delay that preceded the current attempt (0.0 for
the first one). The caller tries once per yielded value and breaks on success;
the generator sleeps before handing out the next attempt.
"""
from __future__ import annotations

import asyncio
from typing import AsyncIterator


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int,
) -> AsyncIterator[float]:
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    delay = 0.0
    for attempt in range(1, max_attempts + 1):
        yield delay
        if attempt == max_attempts:
            return
        delay = initial_delay if attempt == 1 else min(delay * multiplier, max_delay)
        await asyncio.sleep(delay)
