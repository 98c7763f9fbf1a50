"""
Shared utilities for the auth demo service.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Failure taxonomy, classified failures and error responses
- base_service: FastAPI app wiring that renders classified failures

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
