"""
Remote tier adapter over ``redis.asyncio``.
"""

from typing import List, Optional, Protocol, Sequence

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import RemoteOperationError
from shared.logging import get_logger


class RemoteStore(Protocol):
    """Primitives the facade needs from a remote key-value store.

    Values are opaque string payloads; the facade encodes them before the
    first attempt and decodes what comes back.
    """

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, payload: str, ttl_seconds: float) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def mget(self, keys: Sequence[str]) -> List[Optional[str]]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisRemoteStore:
    """Redis-backed remote tier.

    Stores payloads as given with a millisecond expiry. Redis client
    failures are raised as :class:`RemoteOperationError`. The connection
    pool is created on first use and reused for the lifetime of the store.
    """

    def __init__(self, endpoint: str, credential: str, timeout_ms: int = 5000):
        self.endpoint = endpoint
        self._credential = credential
        self.timeout_ms = timeout_ms
        self.logger = get_logger("cache.remote")
        self._redis: Optional[redis.Redis] = None

    def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            timeout = self.timeout_ms / 1000
            self._redis = redis.from_url(
                self.endpoint,
                password=self._credential or None,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=timeout,
                socket_timeout=timeout,
                health_check_interval=30,
            )
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._get_redis().get(key)
        except (RedisError, OSError) as e:
            raise RemoteOperationError("get", str(e), {"key": key}) from e

    async def set(self, key: str, payload: str, ttl_seconds: float) -> bool:
        client = self._get_redis()
        try:
            if ttl_seconds <= 0:
                # Already expired: make the key absent rather than store it.
                await client.delete(key)
            else:
                await client.set(key, payload, px=max(1, int(ttl_seconds * 1000)))
        except (RedisError, OSError) as e:
            raise RemoteOperationError("set", str(e), {"key": key}) from e
        return True

    async def delete(self, key: str) -> bool:
        try:
            removed = await self._get_redis().delete(key)
        except (RedisError, OSError) as e:
            raise RemoteOperationError("delete", str(e), {"key": key}) from e
        return removed > 0

    async def mget(self, keys: Sequence[str]) -> List[Optional[str]]:
        if not keys:
            return []
        try:
            return list(await self._get_redis().mget(list(keys)))
        except (RedisError, OSError) as e:
            raise RemoteOperationError("mget", str(e), {"key_count": len(keys)}) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._get_redis().ping())
        except (RedisError, OSError) as e:
            raise RemoteOperationError("ping", str(e)) from e

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Remote store connection closed")
