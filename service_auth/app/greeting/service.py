"""
Greeting use-cases served by the Auth service.
"""

from typing import Iterable, Optional

from shared.logging import get_logger
from shared.errors import ClassifiedFailure, NotFoundError, classified_boundary
from ..validation.request_validator import RequestValidator, trim


class GreetingService:
    """Builds greetings from validated input and known users."""

    def __init__(self, validator: RequestValidator, known_user_ids: Iterable[str] = ("123", "456")):
        self.validator = validator
        self.known_user_ids = frozenset(known_user_ids)
        self.logger = get_logger("auth.greeting")

    def get_greeting(self) -> str:
        self.logger.debug("Generating greeting message")
        return "Hello World!"

    def get_custom_greeting(self, name: Optional[str]) -> str:
        """Greet name as given (trimmed), after validation."""
        self.logger.debug("Generating custom greeting", name=name)
        self.validator.validate(name)
        return f"Hello, {trim(name)}!"

    def get_validated_greeting(self, name: Optional[str]) -> str:
        """Validate and normalize name, then greet.

        Classified failures pass through unchanged; anything else becomes
        INTERNAL "Error processing greeting" with the original as cause.
        """
        try:
            with classified_boundary(self.logger, "Error processing greeting", name=name):
                self.validator.validate(name)
                processed = self.validator.normalize(name)
        except ClassifiedFailure as e:
            self.logger.info("Greeting rejected", name=name, code=e.code)
            raise

        return f"Hello, {processed}!"

    def get_user_greeting(self, user_id: str) -> str:
        self.logger.debug("Looking up user", user_id=user_id)

        if user_id not in self.known_user_ids:
            self.logger.warning("User not found", user_id=user_id)
            raise NotFoundError(f"User not found with ID: {user_id}", details={"user_id": user_id})

        return f"Hello, User {user_id}!"

    def get_welcome(self, subject: str) -> str:
        return f"Welcome, {subject}"
