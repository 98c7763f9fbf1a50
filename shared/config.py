"""
Shared configuration management for the auth demo service.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "DefaultSecretKeyForDevelopmentOnlyMinimum32Characters"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings.

    Every field can be overridden with an ``ACCESS_``-prefixed environment
    variable (``ACCESS_JWT_SECRET``, ``ACCESS_LOG_LEVEL``...) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Security
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, repr=False)

    # Greeting lookups
    known_user_ids: List[str] = Field(default_factory=lambda: ["123", "456"])


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
