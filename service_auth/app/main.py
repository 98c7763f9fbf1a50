"""
Auth service for the auth demo.
"""

from typing import Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import ClassifiedFailure, InvalidInputError, classified_boundary
from shared.logging import set_subject
from .validation.token_service import TokenService
from .validation.request_validator import MIN_NAME_LENGTH, RequestValidator, trim
from .greeting.service import GreetingService


class TokenVerificationRequest(BaseModel):
    """Request model for token verification."""
    token: Optional[str] = None


class TokenVerificationResponse(BaseModel):
    """Response model for a successful token verification."""
    valid: bool = True
    subject: str


class AuthService(BaseService):
    """Auth service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, token_service: Optional[TokenService] = None):
        super().__init__("auth", 8010, config=config)
        self.token_service = token_service or TokenService(self.config.jwt_secret)
        self.request_validator = RequestValidator()
        self.greeting_service = GreetingService(
            self.request_validator,
            known_user_ids=self.config.known_user_ids
        )

        self._setup_auth_routes()

    def _verify(self, verify, *args) -> str:
        """Run a TokenService entry point and count the outcome."""
        try:
            subject = verify(*args)
        except ClassifiedFailure as e:
            self.metrics.increment_counter("token_verifications_total", outcome=e.code.lower())
            raise
        self.metrics.increment_counter("token_verifications_total", outcome="valid")
        set_subject(subject)
        return subject

    def _setup_auth_routes(self):
        """Set up auth-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "auth",
                "message": "Auth demo - Auth Service",
                "version": "1.0.0"
            }

        @self.app.get("/api/hello", response_class=PlainTextResponse)
        async def hello():
            """Plain greeting."""
            return self.greeting_service.get_greeting()

        @self.app.get("/api/hello/{name}", response_class=PlainTextResponse)
        async def hello_name(name: str):
            """Greeting for a path-supplied name."""
            return self.greeting_service.get_custom_greeting(name)

        @self.app.get("/api/greet", response_class=PlainTextResponse)
        async def greet(name: Optional[str] = None):
            """Validated and normalized greeting, e.g. ?name=ALEXANDER -> Hello, Alexander!"""
            return self.greeting_service.get_validated_greeting(name)

        @self.app.get("/api/greet/response-entity/{name}", response_class=PlainTextResponse)
        async def greet_response_entity(name: str):
            """Checks the name in the handler and builds the 400 response directly."""
            if not trim(name):
                self.logger.warning("Invalid name provided: null or empty")
                return self.render_failure(InvalidInputError("Name cannot be null or empty"))
            if len(trim(name)) < MIN_NAME_LENGTH:
                self.logger.warning("Invalid name provided: too short")
                return self.render_failure(
                    InvalidInputError(f"Name must be at least {MIN_NAME_LENGTH} characters long")
                )
            return self.greeting_service.get_custom_greeting(name)

        @self.app.get("/api/greet/exception/{name}", response_class=PlainTextResponse)
        async def greet_exception(name: str):
            """Leaves validation to the service; its failures render through the shared handler."""
            return self.greeting_service.get_custom_greeting(name)

        @self.app.get("/api/greet/advanced/{name}", response_class=PlainTextResponse)
        async def greet_advanced(name: str):
            """Logs at the handler; classified failures keep their kind."""
            self.logger.info("Advanced greeting requested", name=name)
            try:
                with classified_boundary(self.logger, "An unexpected error occurred", name=name):
                    result = self.greeting_service.get_validated_greeting(name)
            except ClassifiedFailure as e:
                self.logger.error(
                    "Failed to generate greeting",
                    name=name,
                    code=e.code,
                    status_code=e.status_code,
                    reason=e.message
                )
                raise

            self.logger.info("Advanced greeting generated", name=name)
            return result

        @self.app.get("/api/user/{user_id}/greeting", response_class=PlainTextResponse)
        async def user_greeting(user_id: str):
            """Greeting for a known user; unknown ids are a 404."""
            return self.greeting_service.get_user_greeting(user_id)

        @self.app.get("/api/protected", response_class=PlainTextResponse)
        async def protected(request: Request):
            """Endpoint requiring an ``Authorization: Bearer <token>`` header."""
            subject = self._verify(self.token_service.verify_from_headers, request.headers)
            self.logger.info("Protected resource accessed", subject=subject)
            return self.greeting_service.get_welcome(subject)

        @self.app.post("/auth/verify", response_model=TokenVerificationResponse)
        async def verify_token(body: TokenVerificationRequest):
            """Verify an explicitly supplied token and return its subject."""
            subject = self._verify(self.token_service.extract_subject_from_token, body.token)
            return TokenVerificationResponse(subject=subject)

    def _check_dependencies(self):
        """The signing key is the only dependency and is derived at startup."""
        return {"signing_key": "ok"}


def create_app(config: Optional[ServiceConfig] = None, token_service: Optional[TokenService] = None):
    """Create FastAPI application."""
    service = AuthService(config=config, token_service=token_service)
    return service.app


if __name__ == "__main__":
    service = AuthService()
    service.run()
