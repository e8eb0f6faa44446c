"""
Shared fixtures for cache service tests.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from service_cache.app.cache import CacheConfig
from shared.errors import RemoteOperationError


class FakeClock:
    """Settable wall clock in epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubRemoteStore:
    """In-process stand-in for the Redis tier with scriptable failures.

    Like Redis it holds the encoded payloads the facade hands it.
    """

    def __init__(
        self,
        *,
        fail_times: int = 0,
        always_fail: bool = False,
        delay: float = 0.0,
        fail_keys: Sequence[str] = (),
        error: Optional[Exception] = None,
        clock: Optional[FakeClock] = None,
    ):
        self.data: Dict[str, Tuple[str, Optional[float]]] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self.fail_times = fail_times
        self.always_fail = always_fail
        self.delay = delay
        self.fail_keys = set(fail_keys)
        self.error = error or RemoteOperationError("stub", "connection refused")
        self.clock = clock
        self.closed = False

    async def _call(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.always_fail:
            raise self.error
        if self.fail_times > 0:
            self.fail_times -= 1
            raise self.error

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def _read(self, key: str) -> Optional[str]:
        if key not in self.data:
            return None
        value, expires_at = self.data[key]
        if expires_at is not None and self.clock is not None and expires_at <= self.clock():
            del self.data[key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        await self._call("get", key)
        return self._read(key)

    async def set(self, key: str, payload: str, ttl_seconds: float) -> bool:
        await self._call("set", key, payload, ttl_seconds)
        if key in self.fail_keys:
            raise RemoteOperationError("set", "write rejected", {"key": key})
        if ttl_seconds <= 0:
            self.data.pop(key, None)
        else:
            expires_at = self.clock() + ttl_seconds if self.clock is not None else None
            self.data[key] = (payload, expires_at)
        return True

    async def delete(self, key: str) -> bool:
        await self._call("delete", key)
        return self.data.pop(key, None) is not None

    async def mget(self, keys: Sequence[str]) -> List[Optional[str]]:
        await self._call("mget", tuple(keys))
        return [self._read(key) for key in keys]

    async def ping(self) -> bool:
        await self._call("ping")
        return True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    """Fake clock shared by the cache and the stub remote."""
    return FakeClock()


@pytest.fixture
def local_config():
    """Configuration with the remote tier disabled."""
    return CacheConfig(endpoint="", credential="", cleanup_interval_seconds=60)


@pytest.fixture
def remote_config():
    """Configuration with a remote tier and fast, sleep-free retries."""
    return CacheConfig(
        endpoint="redis://cache.internal:6379/0",
        credential="s3cret",
        timeout_ms=50,
        max_retries=2,
        retry_delay_ms=0,
        cleanup_interval_seconds=60,
    )


@pytest.fixture
def make_remote(clock):
    """Factory for stub remote stores bound to the fake clock."""

    def factory(**kwargs) -> StubRemoteStore:
        kwargs.setdefault("clock", clock)
        return StubRemoteStore(**kwargs)

    return factory
