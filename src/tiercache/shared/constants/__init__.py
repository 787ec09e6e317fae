"""
Tiercache Constants Module

Centralized constants for the on-disk format, default policies and the CLI.
"""

from .cache import (
    BASE_DAY,
    BASE_HOUR,
    BASE_MINUTE,
    BASE_SECOND,
    BASE_WEEK,
    CacheDefaults,
    CacheFeature,
    MaintenanceDefaults,
    MonitoringDefaults,
    StoreDefaults,
    StoreFormat,
)
from .cli import CLICommands, CLIDefaults, CLIHelp, CLIMessages

__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MINUTE",
    "BASE_SECOND",
    "BASE_WEEK",
    "CLICommands",
    "CLIDefaults",
    "CLIHelp",
    "CLIMessages",
    "CacheDefaults",
    "CacheFeature",
    "MaintenanceDefaults",
    "MonitoringDefaults",
    "StoreDefaults",
    "StoreFormat",
]
