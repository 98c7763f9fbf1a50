"""
Signed identity tokens for the Auth service.

Tokens are compact HS256 JWTs carrying ``sub``, ``iat`` and ``exp``. One
TokenService instance owns the signing key for the life of the process and
is handed to every call site that issues or verifies tokens.
"""

import binascii
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

import jwt
from jwt.utils import base64url_decode, base64url_encode

from shared.logging import get_logger
from shared.errors import (
    InternalError,
    InvalidInputError,
    UnauthorizedError,
)


ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32
SECRET_PAD_CHAR = "0"
TOKEN_VALIDITY_SECONDS = 3600

AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "

MISSING_HEADER_MESSAGE = "Authorization header required"
BAD_HEADER_FORMAT_MESSAGE = "Invalid authorization header format. Expected: Bearer <token>"
INVALID_TOKEN_MESSAGE = "Invalid token"
EMPTY_TOKEN_MESSAGE = "Token cannot be null or empty"


def pad_secret(secret: str) -> str:
    """Right-pad a short secret with '0' up to the HS256 minimum length."""
    if len(secret) < MIN_SECRET_LENGTH:
        return secret + SECRET_PAD_CHAR * (MIN_SECRET_LENGTH - len(secret))
    return secret


@dataclass(frozen=True)
class SigningKey:
    """Symmetric key material used for both signing and verification."""

    material: bytes = field(repr=False)
    algorithm: str = ALGORITHM

    @classmethod
    def from_secret(cls, secret: str) -> "SigningKey":
        return cls(material=pad_secret(secret).encode("utf-8"))


@dataclass(frozen=True)
class Token:
    """An issued token. ``encoded`` is what travels in the Authorization header."""

    subject: str
    issued_at: int
    expires_at: int
    encoded: str = field(repr=False)

    def __str__(self) -> str:
        return self.encoded


class TokenService:
    """Issues and verifies signed identity tokens."""

    def __init__(self, secret: str, *, clock: Callable[[], float] = time.time):
        """Derive the signing key from secret.

        clock supplies "now" in epoch seconds for both issuance and the
        expiry check.
        """
        self.logger = get_logger("auth.tokens")
        self._clock = clock

        if len(secret) < MIN_SECRET_LENGTH:
            self.logger.warning(
                "JWT secret is too short, using padded version",
                secret_length=len(secret),
                required_length=MIN_SECRET_LENGTH
            )
        self._key = SigningKey.from_secret(secret)
        self.logger.info("TokenService initialized", algorithm=self._key.algorithm)

    @property
    def signing_key(self) -> SigningKey:
        return self._key

    def generate(self, subject: str) -> Token:
        """Issue a token for subject, valid for TOKEN_VALIDITY_SECONDS."""
        self.logger.debug("Generating token", subject=subject)

        issued_at = int(self._clock())
        expires_at = issued_at + TOKEN_VALIDITY_SECONDS
        encoded = jwt.encode(
            {"sub": subject, "iat": issued_at, "exp": expires_at},
            self._key.material,
            algorithm=self._key.algorithm
        )
        return Token(
            subject=subject,
            issued_at=issued_at,
            expires_at=expires_at,
            encoded=encoded
        )

    def verify(self, token: str) -> str:
        """Verify signature and expiry of token and return its subject.

        Every verification problem surfaces as UNAUTHORIZED "Invalid token";
        the concrete reason only goes to the log.
        """
        try:
            self._check_signature_encoding(token)
            claims = jwt.decode(
                token,
                self._key.material,
                algorithms=[self._key.algorithm],
                options={"require": ["sub", "iat", "exp"], "verify_exp": False, "verify_iat": False}
            )
            self._check_expiry(claims)
        except jwt.ExpiredSignatureError as e:
            self.logger.warning("Token expired", error=str(e))
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE, cause=e) from e
        except jwt.InvalidTokenError as e:
            self.logger.warning("Token verification failed", reason=type(e).__name__, error=str(e))
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE, cause=e) from e
        except Exception as e:
            self.logger.error("Unexpected error during token verification", error=str(e), exc_info=True)
            raise InternalError("Token verification failed", cause=e) from e

        subject = claims["sub"]
        self.logger.debug("Token verified", subject=subject)
        return subject

    def verify_from_headers(self, headers: Mapping[str, str]) -> str:
        """Extract the bearer credential from headers and verify it."""
        return self.verify(self.extract_bearer_token(headers))

    def extract_subject_from_token(self, token: Optional[str]) -> str:
        """Verify a token obtained outside the Authorization header."""
        if token is None or not token.strip():
            self.logger.warning("Empty token supplied for subject extraction")
            raise InvalidInputError(EMPTY_TOKEN_MESSAGE)
        return self.verify(token)

    def extract_bearer_token(self, headers: Mapping[str, str]) -> str:
        """Return the credential following the literal "Bearer " prefix."""
        auth_header = _lookup_header(headers, AUTHORIZATION_HEADER)

        if auth_header is None or not auth_header.strip():
            self.logger.warning("Authorization header is missing")
            raise UnauthorizedError(MISSING_HEADER_MESSAGE)

        if not auth_header.startswith(BEARER_PREFIX):
            self.logger.warning("Authorization header does not start with 'Bearer '")
            raise UnauthorizedError(BAD_HEADER_FORMAT_MESSAGE)

        return auth_header[len(BEARER_PREFIX):]

    def _check_signature_encoding(self, token: str) -> None:
        try:
            token.encode("ascii")
        except UnicodeError as e:
            raise jwt.DecodeError("Token contains non-ASCII characters") from e
        parts = token.split(".")
        if len(parts) != 3:
            raise jwt.DecodeError("Not enough segments" if len(parts) < 3 else "Too many segments")
        # base64url decoding ignores stray characters and trailing bits, so
        # a mutated signature segment can decode to the original bytes.
        signature = parts[2].encode("ascii")
        try:
            canonical = base64url_encode(base64url_decode(signature))
        except (binascii.Error, ValueError) as e:
            raise jwt.DecodeError("Invalid signature padding") from e
        if canonical != signature:
            raise jwt.DecodeError("Non-canonical signature encoding")

    def _check_expiry(self, claims: dict) -> None:
        for claim in ("iat", "exp"):
            if isinstance(claims[claim], bool) or not isinstance(claims[claim], (int, float)):
                raise jwt.DecodeError(f"The {claim} claim must be a number")
        if claims["exp"] <= self._clock():
            raise jwt.ExpiredSignatureError("Signature has expired")


def _lookup_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None
