"""
Logging Configuration.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    VERBOSE = "VERBOSE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    FATAL = "FATAL"


class LogFormat(str, Enum):
    CONSOLE = "console"
    JSON = "json"


class LoggingSettings(BaseSettings):
    """Local logging configuration. Remote shipping lives in DatadogSettings."""

    model_config = SettingsConfigDict(
        env_prefix="LOGSHIP_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    level: LogLevel = Field(default=LogLevel.DEBUG, description="Minimum log level")
    sinks: str = Field(default="stdio", description="Comma-separated local sink names (stdio, file)")
    format: LogFormat = Field(default=LogFormat.CONSOLE, description="Output format for the stdio sink")
    file_path: str = Field(default="logs/logship.log", description="Path for file sink")
    file_max_bytes: int = Field(default=10 * 1024 * 1024, description="Rotate the log file past this size")
    file_backup_count: int = Field(default=5, description="Rotated files kept")
    console_timestamp_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Console timestamp format",
    )
    console_level_width: int = Field(default=8, description="Console level column width")
    console_logger_width: int = Field(default=32, description="Console logger column width")
    console_separator: str = Field(default=" | ", description="Console column separator")
