"""
Unit tests for the cache service app.
"""

import pytest
from fastapi.testclient import TestClient

from service_cache.app.cache import ResilientCache
from service_cache.app.main import CacheService, create_app
from shared.errors import CacheSerializationError, RemoteOperationError


class TestCacheService:
    """Test cases for CacheService."""

    @pytest.fixture
    def cache(self, local_config):
        return ResilientCache(local_config)

    @pytest.fixture
    def service(self, cache):
        return CacheService(cache)

    @pytest.fixture
    def client(self, service):
        with TestClient(service.app) as client:
            yield client

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "cache"
        assert data["remote_configured"] is False

    def test_health_healthy(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"] == {"cache": "healthy"}

    def test_health_degraded_when_remote_down(self, remote_config, make_remote):
        cache = ResilientCache(remote_config, remote=make_remote(always_fail=True))
        client = TestClient(create_app(cache))

        response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["dependencies"] == {"cache": "unhealthy"}

    def test_cache_stats(self, client, service):
        response = client.get("/cache/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["remote_configured"] is False
        assert data["fallbacks"] == 0
        assert data["local_entries"] == 0

    def test_metrics_endpoint(self, client):
        client.get("/health")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "health_check_total" in response.text

    def test_lifespan_starts_and_stops_evictor(self, service, cache):
        with TestClient(service.app):
            assert cache._evictor.running is True
        assert cache._evictor.running is False

    def test_cache_layer_errors_rendered(self, service):
        @service.app.get("/boom")
        async def boom():
            raise RemoteOperationError("get", "connection refused")

        client = TestClient(service.app)
        response = client.get("/boom", headers={"x-request-id": "req-1"})

        assert response.status_code == 503
        data = response.json()
        assert data["code"] == "REMOTE_OPERATION_ERROR"
        assert data["message"] == "get: connection refused"
        assert data["request_id"] == "req-1"

    def test_serialization_errors_rendered_as_bad_request(self, service):
        @service.app.get("/bad-value")
        async def bad_value():
            raise CacheSerializationError("k", TypeError("Object of type set is not JSON serializable"))

        client = TestClient(service.app)
        response = client.get("/bad-value")

        assert response.status_code == 400
        assert response.json()["code"] == "CACHE_SERIALIZATION_ERROR"
