"""Configuration models for tiercache."""

from tiercache.config.models.cache_settings import (
    MaintenanceSettings,
    MonitoringOptions,
    PreloadPattern,
    StoreSettings,
)
from tiercache.config.models.settings import LoggingSettings, TierCacheSettings

__all__ = [
    "LoggingSettings",
    "MaintenanceSettings",
    "MonitoringOptions",
    "PreloadPattern",
    "StoreSettings",
    "TierCacheSettings",
]
