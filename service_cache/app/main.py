"""
Cache service for the resilient cache facade.

Owns the process's single ``ResilientCache``: starts it with the app,
closes it on shutdown, and reports its health and statistics.
"""

from typing import Any, Dict, Optional

from shared.base_service import BaseService

from .cache import ResilientCache, create_cache


class CacheService(BaseService):
    """Cache service implementation."""

    def __init__(self, cache: Optional[ResilientCache] = None):
        super().__init__("cache", 8000)
        self.cache = cache if cache is not None else create_cache(
            metrics=self.metrics if self.config.metrics_enabled else None,
        )
        self._setup_cache_routes()

    def _setup_cache_routes(self):
        """Set up cache routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": self.service_name,
                "message": "Resilient Cache Service",
                "remote_configured": self.cache.remote_enabled,
            }

        @self.app.get("/cache/stats")
        async def cache_stats() -> Dict[str, Any]:
            """Cache hit/miss, fallback and eviction counters."""
            return self.cache.get_stats()

    async def _check_dependencies(self) -> Dict[str, str]:
        health = await self.cache.health_check()
        if not health.healthy:
            self.logger.warning("Cache dependency unhealthy", error=health.error)
        return {"cache": health.status}

    async def on_startup(self) -> None:
        await self.cache.start()

    async def on_shutdown(self) -> None:
        await self.cache.close()


def create_app(cache: Optional[ResilientCache] = None):
    """Create the cache service FastAPI app."""
    return CacheService(cache).app


if __name__ == "__main__":
    CacheService().run()
