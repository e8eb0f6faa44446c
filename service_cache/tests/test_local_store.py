"""
Unit tests for the local fallback tier and evictor.
"""

import asyncio

import pytest

from service_cache.app.cache.local_store import Evictor, LocalStore


class TestLocalStore:
    """Test cases for LocalStore."""

    @pytest.fixture
    def store(self, clock):
        return LocalStore(clock=clock)

    def test_get_absent(self, store):
        assert store.get("missing") is None

    def test_set_and_get(self, store):
        assert store.set("k", [1, 2], 10) is True
        assert store.get("k") == [1, 2]

    def test_overwrite_resets_expiry(self, store, clock):
        store.set("k", "old", 5)
        clock.advance(4)
        store.set("k", "new", 5)
        clock.advance(4)
        assert store.get("k") == "new"

    def test_expiry_boundary(self, store, clock):
        """Test an entry is absent exactly at its expiry instant."""
        store.set("k", "v", 10)
        clock.advance(9.999)
        assert store.get("k") == "v"
        clock.advance(0.001)
        assert store.get("k") is None
        assert "k" not in store

    def test_expiry_stored_in_epoch_ms(self, store, clock):
        store.set("k", "v", 1.5)
        assert store._entries["k"].expires_at_ms == round(clock() * 1000) + 1500

    def test_falsy_values_are_kept(self, store):
        store.set("zero", 0, 10)
        store.set("empty", "", 10)
        assert store.get("zero") == 0
        assert store.get("empty") == ""

    def test_delete(self, store):
        store.set("k", "v", 10)
        assert store.delete("k") is True
        assert store.delete("k") is False

    def test_cleanup_removes_only_expired(self, store, clock):
        store.set("a", 1, 1)
        store.set("b", 2, 2)
        store.set("c", 3, 100)
        clock.advance(2)

        assert store.cleanup() == 2
        assert len(store) == 1
        assert store.get("c") == 3

    def test_cleanup_idempotent(self, store, clock):
        store.set("a", 1, 1)
        clock.advance(1)
        assert store.cleanup() == 1
        assert store.cleanup() == 0

    def test_clear(self, store):
        store.set("a", 1, 10)
        store.clear()
        assert len(store) == 0


class TestEvictor:
    """Test cases for Evictor."""

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            Evictor(lambda: 0, interval_seconds=0)

    @pytest.mark.asyncio
    async def test_runs_sweep_periodically(self):
        sweeps = []
        evictor = Evictor(lambda: sweeps.append(1) or 0, interval_seconds=0.01)

        evictor.start()
        await asyncio.sleep(0.05)
        await evictor.stop()

        assert len(sweeps) >= 2
        assert evictor.running is False

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        evictor = Evictor(lambda: 0, interval_seconds=10)

        evictor.start()
        task = evictor._task
        evictor.start()

        assert evictor._task is task
        await evictor.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        evictor = Evictor(lambda: 0)
        await evictor.stop()
        assert evictor.running is False

    @pytest.mark.asyncio
    async def test_sweep_errors_do_not_stop_loop(self):
        calls = []

        def sweep():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return 0

        evictor = Evictor(sweep, interval_seconds=0.01)
        evictor.start()
        await asyncio.sleep(0.05)
        await evictor.stop()

        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_sweeps_store(self, clock):
        store = LocalStore(clock=clock)
        store.set("k", "v", 1)
        clock.advance(1)

        evictor = Evictor(store.cleanup, interval_seconds=0.01)
        evictor.start()
        await asyncio.sleep(0.03)
        await evictor.stop()

        assert len(store) == 0
