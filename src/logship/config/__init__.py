"""
Logship Configuration Module.

Implements the Nested Settings Pattern for orthogonal configuration domains.
Each sub-module represents an independent concern with its own environment variable prefix.

Multi-Environment Support:
    Set `LOGSHIP_ENV` to one of: development, testing, staging, production
    The system will load .env files in this order (later overrides earlier):
    1. .env
    2. .env.local
    3. .env.{environment}
    4. .env.{environment}.local

Usage:
    from logship.config import settings

    settings.environment.env  # "development"
    settings.datadog.enabled  # True when LOGSHIP_DATADOG_API_KEY is set
    settings.logging.level
"""

from functools import cached_property
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from .datadog import DatadogSettings
from .environment import EnvironmentSettings
from .logging import LoggingSettings


def _get_env_files() -> tuple[str, ...]:
    """
    Determine which .env files to load based on LOGSHIP_ENV.

    This function is called at module import time to configure the Settings class.
    """
    env = os.getenv("LOGSHIP_ENV", "development")
    return (
        ".env",
        ".env.local",
        f".env.{env}",
        f".env.{env}.local",
    )


class Settings(BaseSettings):
    """
    Composite settings aggregating all orthogonal configuration domains.

    Sub-settings are loaded lazily, each from its own env prefix.
    """

    model_config = SettingsConfigDict(
        env_file=_get_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @cached_property
    def environment(self) -> EnvironmentSettings:
        return EnvironmentSettings()

    @cached_property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()

    @cached_property
    def datadog(self) -> DatadogSettings:
        return DatadogSettings()


# Singleton instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    "DatadogSettings",
    "EnvironmentSettings",
    "LoggingSettings",
]
