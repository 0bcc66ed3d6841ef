"""
Rate limiter for outgoing messages.

A long transcript turns into many consecutive messages; this keeps the
platform adapter within the transport's send rate using a leaky bucket
(aiolimiter). A flood-wait reported by the platform pauses every sender.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from aiolimiter import AsyncLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MessageRateLimiter:
    """Leaky-bucket limiter shared by all sends of one platform adapter."""

    def __init__(self, rate_limit: int = 20, rate_window: float = 1.0):
        self.limiter = AsyncLimiter(rate_limit, rate_window)
        self._paused_until = 0.0

        logger.info(f"MessageRateLimiter initialized ({rate_limit} req / {rate_window}s)")

    def pause(self, seconds: float) -> None:
        """Hold all sends for ``seconds`` (Telegram FloodWait)."""
        until = asyncio.get_running_loop().time() + seconds
        if until > self._paused_until:
            self._paused_until = until
            logger.warning(f"Outgoing messages paused for {seconds:.1f}s")

    async def _wait_if_paused(self) -> None:
        now = asyncio.get_running_loop().time()
        if self._paused_until > now:
            wait_time = self._paused_until - now
            logger.debug(f"Limiter paused, waiting {wait_time:.1f}s more...")
            await asyncio.sleep(wait_time)

    async def execute(self, func: Callable[[], Awaitable[T]]) -> T:
        """Run ``func`` once rate capacity is available."""
        await self._wait_if_paused()
        async with self.limiter:
            return await func()

    @property
    def is_paused(self) -> bool:
        return self._paused_until > asyncio.get_running_loop().time()
