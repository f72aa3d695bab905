"""
Shared configuration management for the catalog services.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CATALOG_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Backing store
    postgres_dsn: str = Field(default="postgres://localhost:5432/bookstore")
    postgres_min_pool: int = Field(default=2)
    postgres_max_pool: int = Field(default=10)

    # Read-through cache; one TTL for every cached read
    cache_ttl_seconds: int = Field(default=1800, gt=0)

    # Observability
    metrics_enabled: bool = Field(default=True)


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
