"""
Shared configuration management for the Catalog Access Layer.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ACCESS_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Observability
    metrics_port: Optional[int] = Field(default=None)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


class CatalogConfig(ServiceConfig):
    """Catalog service configuration."""

    # Async stream adapter
    worker_pool_size: int = Field(default=8, ge=1)
    stream_delay_seconds: float = Field(default=1.0, ge=0)

    # Resilient query executor
    query_retry_attempts: int = Field(default=3, ge=1)
    query_retry_delay_seconds: float = Field(default=1.0, ge=0)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)


def get_catalog_config(port: int = 8020, **overrides) -> CatalogConfig:
    """Get configuration for the catalog service."""
    return CatalogConfig(service_name="catalog", port=port, **overrides)
