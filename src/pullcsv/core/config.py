"""
pullcsv configuration management.

Provides centralized configuration with validation using Pydantic. The
service is normally configured from environment variables (see
``PullcsvConfig.from_env``); a JSON file with the same shape is accepted too.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

DEFAULT_SYNC_CRON = "*/10 * * * *"
DEFAULT_RETENTION_CRON = "1 */1 * * *"
DEFAULT_MAX_AGE_HOURS = 48

REQUIRED_ENV_VARS = (
    "DOWNLOAD_FROM",
    "DOWNLOAD_TO",
    "RSYNC_PASSWORD",
    "POD_NAME",
    "STAND_NAME",
)


class ConfigurationError(Exception):
    """Raised when the configuration cannot produce a consistent pair set."""


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = False
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: Path("/var/log/pullcsv"))

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()


class ScheduleConfig(BaseModel):
    """Cron expressions driving the sync and retention jobs."""

    sync_cron: str = DEFAULT_SYNC_CRON
    retention_cron: str = DEFAULT_RETENTION_CRON
    timezone: str = "UTC"
    max_workers: int = Field(default=10, ge=1)


class RetentionConfig(BaseModel):
    """Age thresholds for the retention sweeper."""

    max_age_complete_hours: int = Field(default=DEFAULT_MAX_AGE_HOURS, ge=0)
    max_age_partial_hours: int = Field(default=4, ge=0)
    partial_pattern: str = r"^\..*\.\w{6}$"


class ExcludeConfig(BaseModel):
    """Where exclude files live and how large they may grow."""

    max_bytes: int = Field(default=9437184, ge=0)
    tail_lines: int = Field(default=20000, ge=0)
    remote_directory: str = "pullcsv-exclude-files"
    local_directory: Path = Path("/tmp")


class TransferConfig(BaseModel):
    """How the rsync binary is invoked."""

    binary: Path = Path("/usr/bin/rsync")
    payload_flags: list[str] = Field(default_factory=lambda: ["-azq", "--partial"])
    work_directory: Path = Path("/tmp")


class MetricsConfig(BaseModel):
    """Prometheus endpoint settings."""

    enabled: bool = True
    port: int = Field(default=8080, ge=0, le=65535)
    namespace: str = "pullcsv"


class PullcsvConfig(BaseModel):
    """Main pullcsv configuration."""

    sources: list[str]
    destinations: list[str]
    pod_name: str
    stand_name: str
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    exclude: ExcludeConfig = Field(default_factory=ExcludeConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("destinations", mode="before")
    @classmethod
    def add_separator(cls, v: list[str]) -> list[str]:
        """Make every destination absolute with a trailing separator."""
        return [os.path.abspath(str(item)) + os.sep for item in v]

    @model_validator(mode="after")
    def check_pair_lengths(self) -> PullcsvConfig:
        if len(self.sources) != len(self.destinations):
            raise ValueError(
                "Number of items in DOWNLOAD_FROM and DOWNLOAD_TO must be equal "
                f"({len(self.sources)} != {len(self.destinations)})"
            )
        if not self.sources:
            raise ValueError("At least one source/destination pair is required")
        return self

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PullcsvConfig:
        """Build the configuration from environment variables."""
        env = os.environ if environ is None else environ

        for name in REQUIRED_ENV_VARS:
            if name not in env:
                raise ConfigurationError(f"Env variable {name} is not set!")

        max_age = env.get("DELETE_OLDER_THAN", str(DEFAULT_MAX_AGE_HOURS))
        if not max_age.isdigit():
            raise ConfigurationError("Env variable DELETE_OLDER_THAN must contain only digits!")

        data: dict[str, object] = {
            "sources": env["DOWNLOAD_FROM"].split(),
            "destinations": env["DOWNLOAD_TO"].split(),
            "pod_name": env["POD_NAME"],
            "stand_name": env["STAND_NAME"],
            "schedule": {
                "sync_cron": env.get("DOWNLOAD_CRON", DEFAULT_SYNC_CRON),
                "retention_cron": env.get("DELETE_CRON", DEFAULT_RETENTION_CRON),
            },
            "retention": {"max_age_complete_hours": int(max_age)},
            "logging": {
                "level": env.get("LOG_LEVEL", "INFO").upper(),
                "json_format": env.get("LOG_JSON", "").lower() in ("1", "true", "yes"),
            },
        }
        if "METRICS_PORT" in env:
            data["metrics"] = {"port": env["METRICS_PORT"]}

        return cls._validate(data)

    @classmethod
    def load(cls, config_path: Path) -> PullcsvConfig:
        """Load configuration from a JSON file."""
        try:
            with open(config_path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read {config_path}: {e}") from e
        return cls._validate(data)

    @classmethod
    def _validate(cls, data: object) -> PullcsvConfig:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    def save(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

    def ensure_directories(self) -> None:
        """Create all required local directories."""
        self.exclude.local_directory.mkdir(parents=True, exist_ok=True)
        self.transfer.work_directory.mkdir(parents=True, exist_ok=True)
        if self.logging.file_enabled:
            self.logging.log_directory.mkdir(parents=True, exist_ok=True)
        for destination in self.destinations:
            Path(destination).mkdir(parents=True, exist_ok=True)


def load_config(config_path: Path | None = None) -> PullcsvConfig:
    """Load configuration from a file, or from the environment when no file is given."""
    if config_path is None:
        return PullcsvConfig.from_env()
    return PullcsvConfig.load(config_path)
