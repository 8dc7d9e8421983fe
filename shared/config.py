"""
Shared configuration management for the Kube Auth Mock.
"""

from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="KUBE_AUTH_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = "local"
    log_level: str = "info"
    # /docs, /redoc and /openapi.json; off so those paths fall through to the 501 catch-all
    enable_docs: bool = False
    # VERBOSE=enabled is what existing container setups pass
    verbose: bool = Field(default=False, validation_alias=AliasChoices("VERBOSE", "KUBE_AUTH_VERBOSE", "verbose"))

    # Listener
    host: str = "0.0.0.0"
    port: int = Field(default=6443, validation_alias=AliasChoices("PORT", "KUBE_AUTH_PORT", "port"))
    timeout_keep_alive: int = 5

    # Credential issuance
    rsa_key_size: int = Field(default=2048, ge=1024)

    @field_validator("verbose", mode="before")
    @classmethod
    def _parse_verbose(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() in ("enabled", "true", "1", "yes", "on")
        return value

    @property
    def effective_log_level(self) -> str:
        """Log level after applying the verbose switch."""
        return "debug" if self.verbose else self.log_level


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str

    def __init__(self, service_name: str, **kwargs):
        super().__init__(service_name=service_name, **kwargs)


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
