"""
Base service class for the auth demo service.
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from typing import Dict, Any, Optional
import time
import os

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import ClassifiedFailure, InternalError, InvalidInputError, failure_for_status


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        # Configure logging
        configure_logging(service_name, self.config.log_level)

        # Create FastAPI app
        self.app = self._create_app()

        # Set up middleware
        self._setup_middleware()

        # Set up routes
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Auth demo - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        # Request correlation and timing middleware
        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            start_time = time.time()

            try:
                response = await call_next(request)
            finally:
                clear_context()

            duration = time.time() - start_time
            self.metrics.record_http_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code,
                duration=duration
            )
            response.headers["X-Request-ID"] = request_id

            return response

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            self.metrics.record_health_check("ok")
            return {
                "service": self.service_name,
                "status": "ok",
                "uptime_seconds": self._get_uptime(),
                "dependencies": self._check_dependencies(),
                "version": "1.0.0",
                "commit": os.getenv("GIT_COMMIT", "unknown")
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=generate_latest(self.metrics.registry),
                media_type=CONTENT_TYPE_LATEST
            )

        # Error handlers
        @self.app.exception_handler(ClassifiedFailure)
        async def classified_failure_handler(request: Request, exc: ClassifiedFailure):
            """Render a classified failure with the status its kind maps to."""
            return self.render_failure(exc, path=request.url.path)

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            """Malformed requests are INVALID_INPUT; the offending input is not echoed."""
            errors = [
                {"loc": [str(part) for part in error.get("loc", ())], "type": error.get("type")}
                for error in exc.errors()
            ]
            failure = InvalidInputError("Invalid request", details={"errors": errors})
            return self.render_failure(failure, path=request.url.path)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Routing-level errors (unknown path, wrong method) in the classified body."""
            message = exc.detail if isinstance(exc.detail, str) else "Request failed"
            failure = failure_for_status(exc.status_code, message)
            response = self.render_failure(failure, path=request.url.path)
            if exc.headers:
                response.headers.update(exc.headers)
            return response

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle exceptions nothing upstream classified."""
            self.logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=True)
            return self.render_failure(InternalError(cause=exc), path=request.url.path)

    def render_failure(self, failure: ClassifiedFailure, **context) -> JSONResponse:
        """Turn a classified failure into a transport-level error response."""
        log = getattr(self.logger, failure.kind.severity)
        log(
            "Request failed",
            code=failure.code,
            status_code=failure.status_code,
            message=failure.message,
            **context
        )
        self.metrics.record_error(failure.code)
        return JSONResponse(
            status_code=failure.status_code,
            content=failure.to_response().model_dump()
        )

    def _check_dependencies(self) -> Dict[str, Any]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
