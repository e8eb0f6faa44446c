"""
Resilient cache facade.

Every operation tries the remote tier through the timeout/retry executor and,
once retries are exhausted, serves the call from the process-local tier
instead of raising. The two tiers are independent views: a remote hit is
never copied locally and a local fallback write never repairs the remote.
Only ``health_check`` reports remote failure to its caller.

Values must be JSON serializable. Each value is encoded once before the
first remote attempt and both tiers hold the same encoded payload, so a read
returns the JSON form of what was written (a tuple comes back as a list)
whichever tier serves it.
"""

import asyncio
import inspect
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel

from shared.errors import CacheSerializationError, RetriesExhaustedError, describe_error
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import execute_with_retry

from .config import DEFAULT_TTL_SECONDS, CacheConfig
from .local_store import Clock, Evictor, LocalStore
from .remote import RedisRemoteStore, RemoteStore

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry:
    """One item of a batch write. ``ttl_seconds=None`` means the default TTL."""

    key: str
    value: Any
    ttl_seconds: Optional[float] = None


class HealthStatus(BaseModel):
    """Result of a remote liveness probe."""

    status: Literal["healthy", "unhealthy"]
    error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"


EntryLike = Union[CacheEntry, Mapping[str, Any]]


class ResilientCache:
    """Cache facade over a remote tier with a local fallback tier.

    Construct one instance at application start-up and share it; the local
    tier only helps callers that see the same instance. ``start()`` launches
    the background evictor and ``close()`` stops it and releases the remote
    connection.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        *,
        remote: Optional[RemoteStore] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config if config is not None else CacheConfig()
        self.logger = get_logger("cache.facade")
        self.metrics = metrics
        self._retry = self.config.retry_config()
        self._local = LocalStore(clock=clock)
        self._evictor = Evictor(self.cleanup, self.config.cleanup_interval_seconds)

        self._owns_remote = remote is None
        self._remote: Optional[RemoteStore] = None
        if self.config.is_configured:
            self._remote = remote if remote is not None else RedisRemoteStore(
                self.config.endpoint,
                self.config.credential,
                self.config.timeout_ms,
            )
        else:
            self.logger.warning("Remote cache not configured, serving from local tier only")

        self._stats: Dict[str, int] = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "fallbacks": 0,
            "remote_errors": 0,
            "evictions": 0,
        }

    @property
    def remote_enabled(self) -> bool:
        return self._remote is not None

    # Lifecycle

    async def start(self) -> None:
        self._evictor.start()

    async def close(self) -> None:
        await self._evictor.stop()
        if self._remote is not None and self._owns_remote:
            await self._remote.close()

    async def __aenter__(self) -> "ResilientCache":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Public operations

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._with_fallback(
            "get",
            lambda: self._remote.get(key),
            lambda: self._local.get(key),
            key=key,
        )
        value = self._deserialize(raw)
        self._count_lookups([value])
        return value

    async def set(self, key: str, value: Any, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> bool:
        """Write ``value`` under ``key``.

        Raises :class:`CacheSerializationError` before touching either tier
        when the value cannot be encoded as JSON.
        """
        payload = _serialize(key, value)
        await self._with_fallback(
            "set",
            lambda: self._remote.set(key, payload, ttl_seconds),
            lambda: self._local.set(key, payload, ttl_seconds),
            key=key,
        )
        self._stats["sets"] += 1
        return True

    async def delete(self, key: str) -> bool:
        removed = await self._with_fallback(
            "delete",
            lambda: self._remote.delete(key),
            lambda: self._local.delete(key),
            key=key,
        )
        if removed:
            self._stats["deletes"] += 1
        return removed

    async def mget(self, keys: Sequence[str]) -> List[Optional[Any]]:
        keys = list(keys)
        if not keys:
            return []
        raw_values = await self._with_fallback(
            "mget",
            lambda: self._remote.mget(keys),
            lambda: [self._local.get(key) for key in keys],
            key_count=len(keys),
        )
        values = [self._deserialize(raw) for raw in raw_values]
        self._count_lookups(values)
        return values

    async def mset(self, entries: Iterable[EntryLike]) -> bool:
        """Write several entries.

        Remote writes are independent ``SET`` calls issued concurrently under
        one retry-wrapped operation. If that operation exhausts its retries,
        every entry is written to the local tier, including entries whose
        remote write succeeded. Every value is encoded first, so one
        unserializable value fails the whole batch before anything is written.
        """
        items = [_coerce_entry(entry) for entry in entries]
        if not items:
            return True
        payloads = [_serialize(item.key, item.value) for item in items]

        async def remote_mset() -> bool:
            await asyncio.gather(*(
                self._remote.set(item.key, payload, _ttl_or_default(item.ttl_seconds))
                for item, payload in zip(items, payloads)
            ))
            return True

        def local_mset() -> bool:
            for item, payload in zip(items, payloads):
                self._local.set(item.key, payload, _ttl_or_default(item.ttl_seconds))
            return True

        await self._with_fallback("mset", remote_mset, local_mset, key_count=len(items))
        self._stats["sets"] += len(items)
        return True

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Union[T, Awaitable[T]]],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ) -> Optional[T]:
        """Return the cached value, computing and caching it on a miss.

        ``factory`` may be a plain or a coroutine function. Its errors
        propagate; a ``None`` result is returned but not cached.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        value = factory()
        if inspect.isawaitable(value):
            value = await value

        if value is not None:
            await self.set(key, value, ttl_seconds)
        return value

    async def health_check(self) -> HealthStatus:
        if not self.remote_enabled:
            # The local tier is always available.
            return HealthStatus(status="healthy")

        try:
            await self._run_remote("ping", lambda: self._remote.ping())
        except RetriesExhaustedError as exc:
            self.logger.warning("Remote cache health check failed", error=describe_error(exc.last_error))
            return HealthStatus(status="unhealthy", error=describe_error(exc.last_error))
        return HealthStatus(status="healthy")

    def cleanup(self) -> int:
        """Sweep expired entries out of the local tier now."""
        removed = self._local.cleanup()
        self._stats["evictions"] += removed
        if self.metrics:
            self.metrics.increment_counter("cache_evictions_total", removed, reason="sweep")
            self.metrics.set_gauge("cache_local_entries", len(self._local))
        return removed

    def get_stats(self) -> Dict[str, Any]:
        lookups = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "hit_rate": self._stats["hits"] / lookups if lookups else 0.0,
            "local_entries": len(self._local),
            "remote_configured": self.remote_enabled,
        }

    # Internals

    def _deserialize(self, raw: Optional[str]) -> Optional[Any]:
        """Decode a stored payload; one that is not JSON is returned as-is."""
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            self.logger.debug("Cached payload is not JSON, returning raw value")
            return raw

    def _count_lookups(self, values: Sequence[Optional[Any]]) -> None:
        hits = sum(1 for value in values if value is not None)
        self._stats["hits"] += hits
        self._stats["misses"] += len(values) - hits

    async def _with_fallback(
        self,
        operation: str,
        remote_op: Callable[[], Awaitable[T]],
        local_op: Callable[[], T],
        **context: Any,
    ) -> T:
        """Run ``remote_op`` with retries, or ``local_op`` when that is not possible."""
        if not self.remote_enabled:
            self._record_operation(operation, "local")
            return local_op()

        try:
            result = await self._run_remote(operation, remote_op)
        except RetriesExhaustedError as exc:
            self.logger.error(
                "Remote cache operation failed, falling back to local tier",
                operation=operation,
                attempts=exc.attempts,
                error=describe_error(exc.last_error),
                **context,
            )
            self._stats["fallbacks"] += 1
            if self.metrics:
                self.metrics.increment_counter("cache_fallbacks_total", operation=operation)
            self._record_operation(operation, "local")
            return local_op()

        self._record_operation(operation, "remote")
        return result

    async def _run_remote(self, operation: str, remote_op: Callable[[], Awaitable[T]]) -> T:
        """Execute a remote call through the retry executor.

        Raises :class:`RetriesExhaustedError` wrapping the last error.
        """
        attempts = 0

        async def attempt() -> T:
            nonlocal attempts
            attempts += 1
            return await remote_op()

        start = time.perf_counter()
        try:
            result = await execute_with_retry(attempt, self._retry, name=f"cache.{operation}")
        except Exception as exc:
            self._stats["remote_errors"] += 1
            self._record_attempts(operation, failures=attempts, successes=0)
            raise RetriesExhaustedError(operation, attempts, exc) from exc
        finally:
            if self.metrics:
                self.metrics.observe_histogram(
                    "cache_remote_duration_seconds",
                    time.perf_counter() - start,
                    operation=operation,
                )

        self._record_attempts(operation, failures=attempts - 1, successes=1)
        return result

    def _record_operation(self, operation: str, tier: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_operations_total", operation=operation, tier=tier)

    def _record_attempts(self, operation: str, failures: int, successes: int) -> None:
        if not self.metrics:
            return
        if failures:
            self.metrics.increment_counter("cache_retry_attempts_total", failures, operation=operation, outcome="failure")
        if successes:
            self.metrics.increment_counter("cache_retry_attempts_total", successes, operation=operation, outcome="success")


def create_cache(
    config: Optional[CacheConfig] = None,
    metrics: Optional[MetricsCollector] = None,
) -> ResilientCache:
    """Build the process's cache facade from environment configuration."""
    return ResilientCache(config or CacheConfig(), metrics=metrics)


def _serialize(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as exc:
        raise CacheSerializationError(key, exc) from exc


def _ttl_or_default(ttl_seconds: Optional[float]) -> float:
    return DEFAULT_TTL_SECONDS if ttl_seconds is None else ttl_seconds


def _coerce_entry(entry: EntryLike) -> CacheEntry:
    if isinstance(entry, CacheEntry):
        return entry
    return CacheEntry(
        key=entry["key"],
        value=entry["value"],
        ttl_seconds=entry.get("ttl_seconds"),
    )
