"""
Shared error handling for the auth demo service.

Every fallible operation raises exactly one ClassifiedFailure. The kind
decides the transport status; the message is diagnostic only and the
cause never leaves the process.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel


class FailureKind(Enum):
    """Closed set of failure kinds with status and severity metadata."""

    INVALID_INPUT = ("INVALID_INPUT", 400, "warning")
    UNAUTHORIZED = ("UNAUTHORIZED", 401, "warning")
    FORBIDDEN = ("FORBIDDEN", 403, "warning")
    NOT_FOUND = ("NOT_FOUND", 404, "warning")
    CONFLICT = ("CONFLICT", 409, "warning")
    INTERNAL = ("INTERNAL", 500, "error")

    def __init__(self, code: str, status_code: int, severity: str):
        self.code = code
        self.status_code = status_code
        self.severity = severity


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class ClassifiedFailure(Exception):
    """Base exception carrying a failure kind, a message and an optional cause."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self._kind = kind
        self._message = message
        self._cause = cause
        self._details = dict(details or {})
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def kind(self) -> FailureKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def cause(self) -> Optional[BaseException]:
        return self._cause

    @property
    def details(self) -> Dict[str, Any]:
        return dict(self._details)

    @property
    def code(self) -> str:
        return self._kind.code

    @property
    def status_code(self) -> int:
        return self._kind.status_code

    def to_response(self) -> ErrorResponse:
        """Convert to error response. The cause is never rendered."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self._kind.name}, message={self._message!r})"


class InvalidInputError(ClassifiedFailure):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(FailureKind.INVALID_INPUT, message, cause, details)


class UnauthorizedError(ClassifiedFailure):
    """Authentication-related errors."""

    def __init__(self, message: str = "Authentication failed", cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(FailureKind.UNAUTHORIZED, message, cause, details)


class ForbiddenError(ClassifiedFailure):
    """Authorization-related errors."""

    def __init__(self, message: str = "Authorization failed", cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(FailureKind.FORBIDDEN, message, cause, details)


class NotFoundError(ClassifiedFailure):
    """Lookup misses."""

    def __init__(self, message: str = "Resource not found", cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(FailureKind.NOT_FOUND, message, cause, details)


class ConflictError(ClassifiedFailure):
    """State conflicts."""

    def __init__(self, message: str = "Conflict", cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(FailureKind.CONFLICT, message, cause, details)


class InternalError(ClassifiedFailure):
    """Unexpected or unclassified errors."""

    def __init__(self, message: str = "Internal server error", cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(FailureKind.INTERNAL, message, cause, details)


def classify(exc: BaseException, message: str = "Internal server error") -> ClassifiedFailure:
    """Return exc unchanged if already classified, otherwise wrap it once as INTERNAL."""
    if isinstance(exc, ClassifiedFailure):
        return exc
    return InternalError(message, cause=exc)


def failure_for_status(status_code: int, message: str, details: Optional[Dict[str, Any]] = None) -> ClassifiedFailure:
    """Map a framework-level HTTP status onto the closed set of kinds.

    Exact matches keep their kind; any other 4xx is INVALID_INPUT and
    everything else INTERNAL.
    """
    for kind in FailureKind:
        if kind.status_code == status_code and kind is not FailureKind.INTERNAL:
            return ClassifiedFailure(kind, message, details=details)
    if 400 <= status_code < 500:
        return InvalidInputError(message, details=details)
    return InternalError(details=details)


@contextmanager
def classified_boundary(logger: Any, message: str = "Internal server error", **context):
    """Re-raise classified failures as-is and wrap anything else as INTERNAL.

    Unexpected errors are logged here, at the point they get classified.
    """
    try:
        yield
    except ClassifiedFailure:
        raise
    except Exception as e:
        logger.error(message, error=str(e), error_type=type(e).__name__, exc_info=True, **context)
        raise InternalError(message, cause=e) from e
