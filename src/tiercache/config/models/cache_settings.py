"""Cache configuration models.

This module contains the configuration models for the durable store,
the maintenance policy, instrumentation and preloading.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from tiercache.shared.constants import (
    MaintenanceDefaults,
    MonitoringDefaults,
    StoreDefaults,
    StoreFormat,
)


class StoreSettings(BaseModel):
    """Durable store configuration.

    Controls where the SQLite file lives and how the engine is tuned.
    """

    directory: Path = Field(default=Path("."), description="Directory for the database file")
    filename: str = Field(
        default=StoreFormat.DEFAULT_FILENAME,
        min_length=1,
        description="Database file name",
    )
    busy_timeout_ms: int = Field(
        default=StoreDefaults.BUSY_TIMEOUT_MS,
        gt=0,
        description="Milliseconds to wait for another process's lock",
    )
    table_name: str = Field(
        default=StoreFormat.DEFAULT_TABLE,
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Cache table name",
    )
    noexpire_offset: int = Field(
        default=StoreFormat.NOEXPIRE_TIMESTAMP_OFFSET,
        gt=0,
        description="Offset added to now for entries without an expiration",
    )
    journal_mode: str = Field(
        default=StoreDefaults.JOURNAL_MODE,
        description="SQLite journal mode",
    )

    @field_validator("journal_mode")
    @classmethod
    def _validate_journal_mode(cls, value: str) -> str:
        mode = value.upper()
        if mode not in StoreDefaults.JOURNAL_MODES:
            msg = f"journal_mode must be one of {', '.join(StoreDefaults.JOURNAL_MODES)}"
            raise ValueError(msg)
        return mode

    @property
    def path(self) -> Path:
        """Full path of the database file."""
        return self.directory / self.filename


class MaintenanceSettings(BaseModel):
    """Cleanup policy configuration."""

    enabled: bool = Field(default=True, description="Run probabilistic cleanup")
    inverse_probability: int = Field(
        default=MaintenanceDefaults.INVERSE_PROBABILITY,
        ge=1,
        description="Run cleanup one session in this many",
    )
    retention_seconds: int = Field(
        default=MaintenanceDefaults.RETENTION_SECONDS,
        ge=0,
        description="Maximum age of non-expiring entries",
    )
    vacuum: bool = Field(default=True, description="Compact the file after a cleanup")


class MonitoringOptions(BaseModel):
    """Instrumentation options.

    Attributes:
        capture: Persist one sample per bucket at session close
        resolution: Bucket width in seconds
        lifetime: Seconds before a persisted sample expires
        verbose: Also record the names touched by each read and write
    """

    capture: bool = Field(default=False, description="Persist samples")
    resolution: float = Field(
        default=MonitoringDefaults.RESOLUTION_SECONDS,
        gt=0,
        description="Sample bucket width in seconds",
    )
    lifetime: int = Field(
        default=MonitoringDefaults.LIFETIME_SECONDS,
        gt=0,
        description="Sample lifetime in seconds",
    )
    verbose: bool = Field(default=False, description="Record item names")


class PreloadPattern(BaseModel):
    """A group/key glob pair loaded into memory when a session opens."""

    group: str = Field(min_length=1, description="Group glob")
    key: str = Field(default="*", min_length=1, description="Key glob")

    @field_validator("group")
    @classmethod
    def _group_without_delimiter(cls, value: str) -> str:
        if StoreFormat.DELIMITER in value:
            msg = f"group pattern must not contain {StoreFormat.DELIMITER!r}"
            raise ValueError(msg)
        return value


__all__ = [
    "MaintenanceSettings",
    "MonitoringOptions",
    "PreloadPattern",
    "StoreSettings",
]
