"""
Shared configuration management for Open Authorization.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="OPEN_AUTH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    steam_api_url: str = Field(default="https://api.steampowered.com")
    steam_api_key: str = Field(default="")
    steam_api_timeout: float = Field(default=10.0)

    # Alerts
    slack_webhook_url: Optional[str] = Field(default=None)
    slack_channel: str = Field(default="#user-alerts")

    # Authorization policy (rules, overrides, cache time)
    policy_file: str = Field(default="config/authorization.yaml")

    # Listening socket; uds takes precedence over host/port
    uds: Optional[str] = Field(default=None)


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
