"""
Quota ledger: persistent per-user counters of consumed audio seconds.

Counters are keyed by (tier, period, user), so free and premium usage are
tracked independently and a tier change never resets or merges them. The
ledger never enforces caps on plain increments; admission does that before
the increment.
"""

import json
import os
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError

from .errors import ErrorKind, QuotaError
from .period import LIFETIME, PeriodKeyFunc, make_period_key_func, period_ttl_seconds
from .tiers import Tier

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


class QuotaLedger(ABC):
    """Keyed counter store contract used by the quota service."""

    def __init__(self, period_key_func: Optional[PeriodKeyFunc] = None):
        self._period_key = period_key_func or make_period_key_func(LIFETIME)

    def _counter_key(self, user_id: str, tier: Tier) -> str:
        return f"{Tier(tier).value}:{self._period_key()}:{user_id}"

    @abstractmethod
    async def get_consumed(self, user_id: str, tier: Tier) -> int:
        """
        Seconds consumed by the user on this tier in the current period.

        Raises:
            QuotaError: USER_NOT_FOUND when no record exists yet,
                PERIOD_CAP_EXCEEDED when the user was blocked,
                LEDGER_UNAVAILABLE when the store cannot be read.
        """

    @abstractmethod
    async def initialize_user(self, user_id: str, tier: Tier) -> None:
        """Create a zero record if absent. Calling it again changes nothing."""

    @abstractmethod
    async def increment_consumed(self, user_id: str, tier: Tier, delta: int) -> int:
        """Atomically add ``delta`` seconds and return the new total."""

    @abstractmethod
    async def try_consume(
        self, user_id: str, tier: Tier, delta: int, cap: int
    ) -> Optional[int]:
        """
        Atomically add ``delta`` only if the result stays within ``cap``.

        Returns:
            The new total, or None if the increment was not applied.
        """

    @abstractmethod
    async def block_user(self, user_id: str) -> None:
        """Block the user regardless of counters."""

    @abstractmethod
    async def unblock_user(self, user_id: str) -> None:
        """Lift a block set by block_user."""

    async def close(self) -> None:
        """Release store resources."""


def _not_found(user_id: str, tier: Tier) -> QuotaError:
    return QuotaError(f"No usage record for user {user_id} ({tier.value})", ErrorKind.USER_NOT_FOUND)


def _blocked(user_id: str) -> QuotaError:
    return QuotaError(f"User {user_id} is blocked", ErrorKind.PERIOD_CAP_EXCEEDED)


class JsonQuotaLedger(QuotaLedger):
    """
    Ledger persisted to a JSON file.

    All operations run under a thread lock, which makes increments atomic
    within one process. Pass ``":memory:"`` to skip the file entirely.
    """

    def __init__(
        self,
        storage_path: str = "quota.json",
        period_key_func: Optional[PeriodKeyFunc] = None,
    ):
        super().__init__(period_key_func)
        self.storage_path = storage_path
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._blocked: Set[str] = set()
        self._load()

    @property
    def _persistent(self) -> bool:
        return self.storage_path != IN_MEMORY

    def _load(self) -> None:
        """Load counters from disk."""
        if not self._persistent or not os.path.exists(self.storage_path):
            return

        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            self._counters = {k: int(v) for k, v in data.get("counters", {}).items()}
            self._blocked = {str(uid) for uid in data.get("blocked", [])}
            logger.info(
                f"Loaded {len(self._counters)} usage counters from {self.storage_path}"
            )
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load usage counters: {e}")

    def _save(self) -> None:
        """Persist counters to disk."""
        if not self._persistent:
            return

        try:
            directory = os.path.dirname(self.storage_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            data = {"counters": self._counters, "blocked": sorted(self._blocked)}
            tmp_path = f"{self.storage_path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.storage_path)
        except OSError as e:
            logger.error(f"Failed to save usage counters: {e}")
            raise QuotaError(
                f"Failed to save usage counters: {e}", ErrorKind.LEDGER_UNAVAILABLE
            ) from e

    def _set_counter(self, key: str, total: int) -> None:
        """Set a counter and persist it, restoring the old value if the save fails."""
        previous = self._counters.get(key)
        self._counters[key] = total
        try:
            self._save()
        except QuotaError:
            if previous is None:
                self._counters.pop(key, None)
            else:
                self._counters[key] = previous
            raise

    async def get_consumed(self, user_id: str, tier: Tier) -> int:
        user_id = str(user_id)
        with self._lock:
            if user_id in self._blocked:
                raise _blocked(user_id)
            key = self._counter_key(user_id, tier)
            if key not in self._counters:
                raise _not_found(user_id, Tier(tier))
            return self._counters[key]

    async def initialize_user(self, user_id: str, tier: Tier) -> None:
        user_id = str(user_id)
        with self._lock:
            key = self._counter_key(user_id, tier)
            if key in self._counters:
                return
            self._set_counter(key, 0)
            logger.info(f"Initialized {Tier(tier).value} usage record for user {user_id}")

    async def increment_consumed(self, user_id: str, tier: Tier, delta: int) -> int:
        user_id = str(user_id)
        with self._lock:
            key = self._counter_key(user_id, tier)
            total = self._counters.get(key, 0) + delta
            self._set_counter(key, total)
            return total

    async def try_consume(
        self, user_id: str, tier: Tier, delta: int, cap: int
    ) -> Optional[int]:
        user_id = str(user_id)
        with self._lock:
            key = self._counter_key(user_id, tier)
            total = self._counters.get(key, 0) + delta
            if total > cap:
                return None
            self._set_counter(key, total)
            return total

    async def block_user(self, user_id: str) -> None:
        with self._lock:
            user_id = str(user_id)
            added = user_id not in self._blocked
            self._blocked.add(user_id)
            try:
                self._save()
            except QuotaError:
                if added:
                    self._blocked.discard(user_id)
                raise
        logger.info(f"Blocked user {user_id}")

    async def unblock_user(self, user_id: str) -> None:
        with self._lock:
            self._blocked.discard(str(user_id))
            self._save()
        logger.info(f"Unblocked user {user_id}")


# Adds ARGV[1] to KEYS[1] unless the result would exceed ARGV[2].
# A new key gets the period TTL ARGV[3] (0 means none).
_TRY_CONSUME_SCRIPT = """
local existing = redis.call('GET', KEYS[1])
local total = tonumber(existing or '0') + tonumber(ARGV[1])
if total > tonumber(ARGV[2]) then
    return nil
end
local ttl = tonumber(ARGV[3])
if existing then
    redis.call('SET', KEYS[1], total, 'KEEPTTL')
elseif ttl > 0 then
    redis.call('SET', KEYS[1], total, 'EX', ttl)
else
    redis.call('SET', KEYS[1], total)
end
return total
"""


class RedisQuotaLedger(QuotaLedger):
    """
    Ledger backed by Redis.

    INCRBY gives atomic increments across processes, SET NX makes
    initialization idempotent and a Lua script implements the conditional
    increment.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        period: str = LIFETIME,
        prefix: str = "quota",
    ):
        super().__init__(make_period_key_func(period))
        self.redis = redis_client
        self.prefix = prefix
        self._ttl = period_ttl_seconds(period)
        self._try_consume = redis_client.register_script(_TRY_CONSUME_SCRIPT)

    @classmethod
    def from_url(cls, url: str, period: str = LIFETIME) -> "RedisQuotaLedger":
        return cls(redis.from_url(url, decode_responses=True), period=period)

    def _key(self, user_id: str, tier: Tier) -> str:
        return f"{self.prefix}:{self._counter_key(str(user_id), tier)}"

    def _blocked_key(self, user_id: str) -> str:
        return f"{self.prefix}:blocked:{user_id}"

    @staticmethod
    def _unavailable(operation: str, error: Exception) -> QuotaError:
        logger.error(f"Redis {operation} failed: {error}")
        return QuotaError(
            f"Redis {operation} failed: {error}", ErrorKind.LEDGER_UNAVAILABLE
        )

    async def get_consumed(self, user_id: str, tier: Tier) -> int:
        try:
            if await self.redis.exists(self._blocked_key(user_id)):
                raise _blocked(str(user_id))
            value = await self.redis.get(self._key(user_id, tier))
        except RedisError as e:
            raise self._unavailable("read", e) from e

        if value is None:
            raise _not_found(str(user_id), Tier(tier))
        return int(value)

    async def initialize_user(self, user_id: str, tier: Tier) -> None:
        try:
            created = await self.redis.set(
                self._key(user_id, tier), 0, nx=True, ex=self._ttl
            )
        except RedisError as e:
            raise self._unavailable("initialize", e) from e
        if created:
            logger.info(f"Initialized {Tier(tier).value} usage record for user {user_id}")

    async def increment_consumed(self, user_id: str, tier: Tier, delta: int) -> int:
        key = self._key(user_id, tier)
        try:
            total = await self.redis.incrby(key, delta)
            if self._ttl and total == delta:
                await self.redis.expire(key, self._ttl)
        except RedisError as e:
            raise self._unavailable("increment", e) from e
        return int(total)

    async def try_consume(
        self, user_id: str, tier: Tier, delta: int, cap: int
    ) -> Optional[int]:
        try:
            total = await self._try_consume(
                keys=[self._key(user_id, tier)], args=[delta, cap, self._ttl or 0]
            )
        except RedisError as e:
            raise self._unavailable("conditional increment", e) from e
        return None if total is None else int(total)

    async def block_user(self, user_id: str) -> None:
        try:
            await self.redis.set(self._blocked_key(user_id), 1)
        except RedisError as e:
            raise self._unavailable("block", e) from e
        logger.info(f"Blocked user {user_id}")

    async def unblock_user(self, user_id: str) -> None:
        try:
            await self.redis.delete(self._blocked_key(user_id))
        except RedisError as e:
            raise self._unavailable("unblock", e) from e
        logger.info(f"Unblocked user {user_id}")

    async def close(self) -> None:
        await self.redis.aclose()
