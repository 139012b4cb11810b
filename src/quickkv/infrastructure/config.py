"""Configuration management for the key-value store."""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_FILE_NAME = "db.qkv"
FILE_SUFFIX = ".qkv"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["json", "console"]
SyncModeName = Literal["fsync", "fdatasync", "none"]
RuntimeName = Literal["disk", "memory"]


def normalize_database_path(path: str | Path) -> Path:
    """Make a database path point at a ``.qkv`` file.

    A path ending in a separator, or naming an existing directory, gets
    ``db.qkv`` appended. Any other extension is replaced by ``.qkv`` and a
    missing one is added.

    Example:
        >>> normalize_database_path("data/")
        PosixPath('data/db.qkv')
        >>> normalize_database_path("data/users.db")
        PosixPath('data/users.qkv')
    """
    raw = os.fspath(path)
    if not raw:
        return Path(DEFAULT_FILE_NAME)
    if raw.endswith(("/", os.sep)) or Path(raw).is_dir():
        return Path(raw) / DEFAULT_FILE_NAME
    result = Path(raw)
    if result.suffix != FILE_SUFFIX:
        result = result.with_suffix(FILE_SUFFIX)
    return result


class QuickConfiguration(BaseModel):
    """Options accepted when opening a client.

    Every field has a default, so ``QuickConfiguration()`` (or passing no
    configuration at all) opens ``db.qkv`` in the working directory with
    logging disabled. Nothing here is read from the environment.
    """

    model_config = ConfigDict(frozen=True)

    path: Path = Field(default=Path(DEFAULT_FILE_NAME), description="Database file path")
    logs: bool = Field(default=False, description="Emit structured logs")
    log_level: LogLevel = Field(default="INFO", description="Log level")
    log_format: LogFormat = Field(default="console", description="Log format")
    sync_mode: SyncModeName = Field(
        default="fsync", description="How appended records are pushed to disk"
    )
    runtime: RuntimeName = Field(
        default="disk", description="'disk' persists to the file, 'memory' keeps nothing"
    )
    default_ttl: timedelta | None = Field(
        default=None, description="Expiry applied to writes that do not pass a ttl"
    )

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, value: str | Path) -> Path:
        return normalize_database_path(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value

    @field_validator("default_ttl")
    @classmethod
    def _positive_ttl(cls, value: timedelta | None) -> timedelta | None:
        if value is not None and value <= timedelta(0):
            raise ValueError("default_ttl must be positive")
        return value


class CLISettings(BaseSettings):
    """Settings for the command-line front-end.

    Read from ``QUICKKV_*`` environment variables; command-line flags
    override them. The library core never reads these.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUICKKV_",
        case_sensitive=False,
    )

    path: Path = Field(default=Path(DEFAULT_FILE_NAME), description="Database file path")
    logs: bool = Field(default=False, description="Emit structured logs")
    log_level: LogLevel = Field(default="INFO", description="Log level")
    log_format: LogFormat = Field(default="console", description="Log format")
    sync_mode: SyncModeName = Field(default="fsync", description="Sync mode")
    trace: bool = Field(default=False, description="Print trace spans to the console")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value

    def to_configuration(self) -> QuickConfiguration:
        """Build the client configuration these settings describe."""
        return QuickConfiguration(
            path=self.path,
            logs=self.logs,
            log_level=self.log_level,
            log_format=self.log_format,
            sync_mode=self.sync_mode,
        )
