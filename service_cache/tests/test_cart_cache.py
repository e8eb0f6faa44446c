"""
Unit tests for the cart cache helpers.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from service_cache.app.cache import ResilientCache
from service_cache.app.cache.cart import (
    CART_TTL_SECONDS,
    cart_key,
    get_cart_from_cache,
    invalidate_cart_cache,
    set_cart_in_cache,
)


class TestCartCache:
    """Test cases for cart helpers."""

    @pytest.fixture
    def mock_cache(self):
        cache = MagicMock(spec=ResilientCache)
        cache.get = AsyncMock(return_value='[{"productId": "p1"}]')
        cache.set = AsyncMock(return_value=True)
        cache.delete = AsyncMock(return_value=True)
        return cache

    def test_cart_key(self):
        assert cart_key("42") == "cart:42"

    @pytest.mark.asyncio
    async def test_get_cart_uses_cart_key(self, mock_cache):
        result = await get_cart_from_cache(mock_cache, "42")

        assert result == '[{"productId": "p1"}]'
        mock_cache.get.assert_awaited_once_with("cart:42")

    @pytest.mark.asyncio
    async def test_set_cart_default_ttl(self, mock_cache):
        cart = [{"productId": "p1", "quantity": 2}]

        assert await set_cart_in_cache(mock_cache, "42", cart) is True
        mock_cache.set.assert_awaited_once_with("cart:42", cart, 600)
        assert CART_TTL_SECONDS == 600

    @pytest.mark.asyncio
    async def test_set_cart_custom_ttl(self, mock_cache):
        await set_cart_in_cache(mock_cache, "42", [], ttl_seconds=30)
        mock_cache.set.assert_awaited_once_with("cart:42", [], 30)

    @pytest.mark.asyncio
    async def test_invalidate_cart(self, mock_cache):
        assert await invalidate_cart_cache(mock_cache, "42") is True
        mock_cache.delete.assert_awaited_once_with("cart:42")

    @pytest.mark.asyncio
    async def test_cart_round_trip_local_tier(self, local_config, clock):
        """Test cart entries live for the default TTL on the local tier."""
        cache = ResilientCache(local_config, clock=clock)
        payload = '[{"productId": "p1", "quantity": 1}]'

        await set_cart_in_cache(cache, "42", payload)
        assert await get_cart_from_cache(cache, "42") == payload

        clock.advance(601)
        assert await get_cart_from_cache(cache, "42") is None

    @pytest.mark.asyncio
    async def test_invalidate_with_failing_remote(self, remote_config, make_remote):
        cache = ResilientCache(remote_config, remote=make_remote(always_fail=True))

        await set_cart_in_cache(cache, "7", ["item"])
        assert await invalidate_cart_cache(cache, "7") is True
        assert await get_cart_from_cache(cache, "7") is None
