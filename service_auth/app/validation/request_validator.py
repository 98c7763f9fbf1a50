"""
Validation of user-supplied name input.
"""

from typing import Optional

from shared.logging import get_logger
from shared.errors import InvalidInputError


MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50

# Control characters and the ASCII space; wider Unicode whitespace such as
# U+00A0 or U+3000 counts as content.
TRIM_CHARS = "".join(chr(code) for code in range(0x21))


def trim(value: str) -> str:
    """Strip leading and trailing characters at or below U+0020."""
    return value.strip(TRIM_CHARS)


class RequestValidator:
    """Validates free-text name fields before they are used.

    Checks run in a fixed order and the first failing one decides the
    message; violations are never aggregated.
    """

    def __init__(self, min_length: int = MIN_NAME_LENGTH, max_length: int = MAX_NAME_LENGTH):
        self.min_length = min_length
        self.max_length = max_length
        self.logger = get_logger("auth.request_validator")

    def validate(self, name: Optional[str]) -> None:
        if name is None or not trim(name):
            self.logger.warning("Invalid name provided: name is null or empty")
            raise InvalidInputError("Name cannot be null or empty")

        trimmed = trim(name)
        if len(trimmed) < self.min_length:
            self.logger.warning("Invalid name provided: name too short", name=name)
            raise InvalidInputError(f"Name must be at least {self.min_length} characters long")

        if len(trimmed) > self.max_length:
            self.logger.warning("Invalid name provided: name too long", length=len(trimmed))
            raise InvalidInputError(f"Name cannot exceed {self.max_length} characters")

    def normalize(self, name: str) -> str:
        """Capitalize a validated name: first letter upper, rest lower."""
        trimmed = trim(name)
        return trimmed[:1].upper() + trimmed[1:].lower()
