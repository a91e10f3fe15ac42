"""
Minimum-interval pacing for capacity-constrained (free-tier) models.

A wall-clock approximation of a tokens-per-minute budget: calls to the same
``provider:model`` key are spaced at least ``free_tier.min_interval_ms``
apart.  The last-call time lives in an injected store so it survives
restarts.

Not safe for concurrent callers of the same key: the read-then-write of
the timestamp is not atomic.  One call per cycle is the expected use.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol

from ..providers.catalog import ModelDescriptor

logger = logging.getLogger(__name__)


class TimestampStore(Protocol):
    """Durable ``key -> last call (epoch seconds)`` map."""

    async def get(self, key: str) -> Optional[float]:
        ...

    async def set(self, key: str, ts: float) -> None:
        ...


class MemoryTimestampStore:
    """In-process store; state is lost on restart."""

    def __init__(self, initial: Optional[dict[str, float]] = None):
        self._times: dict[str, float] = dict(initial or {})

    async def get(self, key: str) -> Optional[float]:
        return self._times.get(key)

    async def set(self, key: str, ts: float) -> None:
        self._times[key] = ts


class RateLimiter:
    """Suspends callers until a model's minimum interval has elapsed."""

    def __init__(
        self,
        store: TimestampStore,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self._clock = clock
        self._sleep = sleep

    async def wait(self, model: ModelDescriptor) -> float:
        """
        Wait out the remaining interval for ``model`` and record the call.

        Returns:
            Seconds slept (0.0 when no wait was needed or the model is
            unpaced).
        """
        min_interval_ms = model.free_tier.min_interval_ms if model.free_tier else None
        if not min_interval_ms:
            return 0.0

        key = model.rate_limit_key
        interval = min_interval_ms / 1000
        last_call = await self.store.get(key)

        waited = 0.0
        if last_call:
            elapsed = self._clock() - last_call
            if elapsed < interval:
                waited = interval - elapsed
                logger.info(
                    "Rate limit %s: waiting %.1fs (free tier %s TPM)",
                    key, waited, model.free_tier.tokens_per_minute or "n/a",
                )
                await self._sleep(waited)

        # Recorded after the wait so a delayed call doesn't push later ones back further.
        await self.store.set(key, self._clock())
        return waited
