"""
Shared configuration management for the Entitlements Bridge.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local", validation_alias=AliasChoices("env", "ENTITLEMENTS_ENV"))
    log_level: str = Field(default="info", validation_alias=AliasChoices("log_level", "ENTITLEMENTS_LOG_LEVEL"))

    # Identity provider
    keycloak_server: str = Field(default="http://localhost:8080")
    keycloak_username: str = Field(default="admin")
    keycloak_password: str = Field(default="admin")
    keycloak_realm: str = Field(default="redhat-external")
    keycloak_client_id: str = Field(default="admin-cli")

    # Directory fetch
    directory_page_size: int = Field(default=2000, validation_alias=AliasChoices("directory_page_size", "ENTITLEMENTS_DIRECTORY_PAGE_SIZE"))
    directory_timeout_seconds: float = Field(default=10.0, validation_alias=AliasChoices("directory_timeout_seconds", "ENTITLEMENTS_DIRECTORY_TIMEOUT"))

    # Observability
    enable_tracing: bool = Field(default=False, validation_alias=AliasChoices("enable_tracing", "ENTITLEMENTS_ENABLE_TRACING"))
    otel_exporter: str = Field(default="http://localhost:4317", validation_alias=AliasChoices("otel_exporter", "ENTITLEMENTS_OTEL_EXPORTER"))
    enable_console_tracing: bool = Field(default=False, validation_alias=AliasChoices("enable_console_tracing", "ENTITLEMENTS_ENABLE_CONSOLE_TRACING"))

    @property
    def keycloak_server_url(self) -> str:
        """Identity provider base URL without a trailing slash."""
        return self.keycloak_server.rstrip("/")


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
