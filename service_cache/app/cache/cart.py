"""
Cart cache helpers kept for the cart feature.

The ``cart:{user_id}`` key format and the 600 second default TTL are relied
on by existing callers and must not change.
"""

from typing import Any, Optional

from .facade import ResilientCache

CART_KEY_PREFIX = "cart"
CART_TTL_SECONDS = 600


def cart_key(user_id: str) -> str:
    return f"{CART_KEY_PREFIX}:{user_id}"


async def get_cart_from_cache(cache: ResilientCache, user_id: str) -> Optional[Any]:
    return await cache.get(cart_key(user_id))


async def set_cart_in_cache(
    cache: ResilientCache,
    user_id: str,
    cart: Any,
    ttl_seconds: float = CART_TTL_SECONDS,
) -> bool:
    return await cache.set(cart_key(user_id), cart, ttl_seconds)


async def invalidate_cart_cache(cache: ResilientCache, user_id: str) -> bool:
    return await cache.delete(cart_key(user_id))
