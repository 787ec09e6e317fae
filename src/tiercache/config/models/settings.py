"""Tiercache Settings Configuration Model.

Main settings class that consolidates all configuration domains.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import toml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tiercache.config.models.cache_settings import (
    MaintenanceSettings,
    MonitoringOptions,
    PreloadPattern,
    StoreSettings,
)
from tiercache.shared.constants import CacheDefaults

logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    file: str | None = Field(default=None, description="Optional JSON log file path")
    console_output: bool = Field(default=True, description="Rich console output")


def _default_preload() -> list[PreloadPattern]:
    return [
        PreloadPattern(group=group, key=key)
        for group, key in CacheDefaults.PRELOAD_PATTERNS
    ]


class TierCacheSettings(BaseSettings):
    """Settings facade for every configuration domain.

    Values come from keyword arguments (usually a TOML file) first and
    ``TIERCACHE_*`` environment variables second, e.g.
    ``TIERCACHE_STORE__BUSY_TIMEOUT_MS=2000``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TIERCACHE_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    store: StoreSettings = Field(default_factory=StoreSettings)
    maintenance: MaintenanceSettings = Field(default_factory=MaintenanceSettings)
    monitoring: MonitoringOptions = Field(default_factory=MonitoringOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    codec: Literal["pickle", "orjson"] = Field(
        default=CacheDefaults.CODEC,
        description="Value serialization format",
    )
    preload: list[PreloadPattern] = Field(default_factory=_default_preload)

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> TierCacheSettings:
        """Load settings from TOML file with environment variable overrides."""

        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        raw_config = toml.load(file_path)
        logger.debug("Loaded configuration from %s", file_path)
        return cls(**raw_config)

    def to_toml_file(self, file_path: str | Path) -> None:
        """Save settings to TOML file."""

        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json", exclude_none=True)

        with open(file_path, "w", encoding="utf-8") as f:
            toml.dump(config_dict, f)


__all__ = ["LoggingSettings", "TierCacheSettings"]
