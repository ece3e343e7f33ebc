"""
Environment Configuration.

The environment is determined by the `LOGSHIP_ENV` environment variable and
doubles as the default `env` tag of shipped logs.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


Environment = Literal["development", "testing", "staging", "production"]


class EnvironmentSettings(BaseSettings):
    """Deployment environment, read from `LOGSHIP_ENV`."""

    model_config = SettingsConfigDict(
        env_prefix="LOGSHIP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: Environment = Field(
        default="development",
        description="Current environment (development, testing, staging, production)",
    )

