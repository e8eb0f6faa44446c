"""
Shared utilities for the resilient cache service.

This package aggregates common building blocks:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Cache error taxonomy and error responses
- retry: Timeout/retry executor with linear backoff
- base_service: FastAPI service shell (health, metrics, lifecycle)

Do not import from service_* packages into shared/.
"""
