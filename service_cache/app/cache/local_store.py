"""
Process-local fallback tier and its background evictor.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from shared.logging import get_logger

Clock = Callable[[], float]


@dataclass(frozen=True)
class LocalEntry:
    """A value and the absolute epoch millisecond at which it expires."""

    value: Any
    expires_at_ms: int


class LocalStore:
    """In-memory key/value map with per-entry expiry.

    An entry whose ``expires_at_ms`` is at or before now is logically
    absent. ``get`` reclaims such entries lazily and ``cleanup`` sweeps them
    in bulk. All access goes through one lock so the store may be shared
    with worker threads.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or time.time
        self._entries: Dict[str, LocalEntry] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> int:
        return int(round(self._clock() * 1000))

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at_ms <= self._now_ms():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> bool:
        expires_at_ms = self._now_ms() + int(round(ttl_seconds * 1000))
        with self._lock:
            self._entries[key] = LocalEntry(value=value, expires_at_ms=expires_at_ms)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def cleanup(self) -> int:
        """Remove every expired entry; returns how many were removed."""
        now_ms = self._now_ms()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at_ms <= now_ms]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Raw membership, ignoring expiry.
        with self._lock:
            return key in self._entries


class Evictor:
    """Periodic task that sweeps expired entries out of a ``LocalStore``."""

    def __init__(
        self,
        sweep: Callable[[], int],
        interval_seconds: float = 60.0,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.sweep = sweep
        self.interval_seconds = interval_seconds
        self.logger = get_logger("cache.evictor")
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sweeping on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="cache-evictor")
        self.logger.info("Evictor started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.logger.info("Evictor stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                removed = self.sweep()
            except Exception as exc:
                self.logger.error("Eviction pass failed", error=str(exc))
                continue
            if removed:
                self.logger.debug("Evicted expired entries", removed=removed)
