"""
Datadog Sink Configuration.

Everything the remote sink needs at construction time. Frozen: a sink never
sees its configuration change after it is built.
"""

from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INTAKE_URL = "https://http-intake.logs.datadoghq.com/v1/input/{api_key}"


class DatadogSettings(BaseSettings):
    """
    Datadog HTTP intake settings.
    Prefix: LOGSHIP_DATADOG_
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGSHIP_DATADOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    api_key: Optional[SecretStr] = Field(
        default=None,
        description="Datadog API key. The sink stays inactive without one.",
    )
    service: str = Field(default="logship", description="Service name stamped on every log")
    env: Optional[str] = Field(
        default=None,
        description="Environment tag; falls back to LOGSHIP_ENV when unset",
    )
    hostname: Optional[str] = Field(default=None, description="Hostname override (default: this machine)")
    source: str = Field(default="python", description="Source tag identifying the producing runtime")

    intake_url: str = Field(
        default=DEFAULT_INTAKE_URL,
        description="Intake URL; '{api_key}' is substituted when present",
    )
    send_api_key_header: bool = Field(default=True, description="Also send the key as the DD-API-KEY header")

    request_timeout: float = Field(default=10.0, gt=0, description="Per-request timeout (seconds)")
    drain_timeout: float = Field(default=30.0, ge=0, description="Total wait for pending logs on close (seconds)")
    max_workers: int = Field(default=8, ge=1, description="Concurrent deliveries")

    @field_validator("api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def enabled(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value().strip())

    @property
    def resolved_env(self) -> str:
        if self.env:
            return self.env
        from .environment import EnvironmentSettings

        return EnvironmentSettings().env
