"""
Cache Service package.

Structure:
- app.cache: the resilient cache facade (remote tier, local fallback tier,
  evictor, cart helpers).
- app.main: FastAPI app exposing health, statistics and metrics, and owning
  the cache instance's lifecycle.
"""
