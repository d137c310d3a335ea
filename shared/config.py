"""
Shared configuration management for the CloudWatch exporter.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CLOUDWATCH_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Destinations
    config_file: Optional[str] = Field(default=None)
    region: str = Field(default="us-east-1")

    # Dispatch
    max_workers: int = Field(default=4, ge=1)
    metadata_timeout_seconds: float = Field(default=1.0, gt=0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int = 8020
    host: str = "0.0.0.0"


def get_config(service_name: str, port: Optional[int] = None, **overrides) -> ServiceConfig:
    """Get configuration for a specific service.

    An explicit ``port`` wins over ``CLOUDWATCH_PORT``.
    """
    if port is not None:
        overrides["port"] = port
    return ServiceConfig(service_name=service_name, **overrides)
