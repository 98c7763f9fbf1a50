"""
Auth Service package for the auth demo.

This package exposes the FastAPI application that verifies bearer tokens
and serves the greeting endpoints. It is intentionally small:

- app.main: Application entrypoint that wires routes and lifecycle.
- app.validation: Token service and request input validation.
- app.greeting: Greeting use-cases built on the validators.

Design notes:
- Keep the package import side-effects minimal; the signing key is derived
  when the service is constructed, not at import time.
- Use the shared/ utilities for logging, metrics, config and errors.
- The service is stateless apart from the immutable signing key.
"""
