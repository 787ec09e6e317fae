"""Configuration package for tiercache."""

from tiercache.config.loader import load_settings
from tiercache.config.models import (
    LoggingSettings,
    MaintenanceSettings,
    MonitoringOptions,
    PreloadPattern,
    StoreSettings,
    TierCacheSettings,
)

__all__ = [
    "LoggingSettings",
    "MaintenanceSettings",
    "MonitoringOptions",
    "PreloadPattern",
    "StoreSettings",
    "TierCacheSettings",
    "load_settings",
]
