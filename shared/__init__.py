"""
Shared utilities for the bookstore catalog.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI service skeleton
- test_helpers: Test data factories, fake clock and in-memory repository

Do not import from service_* packages into shared/ runtime modules;
test_helpers is the one test-only exception.
"""
