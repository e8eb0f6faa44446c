"""
Resilient cache package.

Provides a single get/set/delete/batch API backed by Redis that degrades to
a process-local tier when Redis is slow, failing or not configured:

- config: ``CacheConfig`` settings (endpoint, credential, retry policy)
- local_store: local fallback tier and its background evictor
- remote: ``redis.asyncio`` adapter for the remote tier
- facade: ``ResilientCache``, the public surface
- cart: cart helpers with the fixed ``cart:{user_id}`` key format
"""

from .cart import get_cart_from_cache, invalidate_cart_cache, set_cart_in_cache
from .config import CacheConfig, get_cache_config
from .facade import CacheEntry, HealthStatus, ResilientCache, create_cache
from .local_store import Evictor, LocalEntry, LocalStore
from .remote import RedisRemoteStore, RemoteStore

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "Evictor",
    "HealthStatus",
    "LocalEntry",
    "LocalStore",
    "RedisRemoteStore",
    "RemoteStore",
    "ResilientCache",
    "create_cache",
    "get_cache_config",
    "get_cart_from_cache",
    "invalidate_cart_cache",
    "set_cart_in_cache",
]
