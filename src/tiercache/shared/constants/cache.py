"""
Cache Configuration Constants

Centralized constants for the on-disk format and the default cache policy.
Changing anything in ``StoreFormat`` changes the file format.
"""

# Base time units for TTL calculations
BASE_SECOND = 1
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR
BASE_WEEK = 7 * BASE_DAY


class StoreFormat:
    """Persisted file format."""

    DEFAULT_FILENAME = "tiercache.db"
    DEFAULT_TABLE = "object_cache"

    # group + DELIMITER + key
    DELIMITER = "|"

    # Added to "now" for entries stored without an expiration.
    NOEXPIRE_TIMESTAMP_OFFSET = 500_000_000_000

    # Rows owned by the cache itself live in this group.
    RESERVED_GROUP = "tiercache"
    CREATED_MARKER = RESERVED_GROUP + DELIMITER + "created"
    SAMPLE_PREFIX = RESERVED_GROUP + DELIMITER + "mon" + DELIMITER
    SAMPLE_BUCKET_WIDTH = 12

    LIKE_ESCAPE = "\\"


class StoreDefaults:
    """Engine tuning defaults."""

    BUSY_TIMEOUT_MS = 500
    JOURNAL_MODE = "WAL"
    SYNCHRONOUS = "OFF"
    ENCODING = "UTF-8"
    JOURNAL_MODES = ("DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF")


class CacheDefaults:
    """Session-level defaults."""

    DEFAULT_GROUP = "default"
    NO_EXPIRATION = 0
    CODEC = "pickle"
    PRELOAD_PATTERNS = (("default", "*"),)


class MaintenanceDefaults:
    """Cleanup policy defaults."""

    INVERSE_PROBABILITY = 1000
    RETENTION_SECONDS = BASE_WEEK


class MonitoringDefaults:
    """Instrumentation defaults."""

    RESOLUTION_SECONDS = 60.0
    LIFETIME_SECONDS = BASE_HOUR


class CacheFeature:
    """Capabilities the host can query through ``supports()``."""

    ADD_MULTIPLE = "add_multiple"
    SET_MULTIPLE = "set_multiple"
    GET_MULTIPLE = "get_multiple"
    DELETE_MULTIPLE = "delete_multiple"
    FLUSH_RUNTIME = "flush_runtime"
    FLUSH_GROUP = "flush_group"

    SUPPORTED = frozenset(
        {
            ADD_MULTIPLE,
            SET_MULTIPLE,
            GET_MULTIPLE,
            DELETE_MULTIPLE,
            FLUSH_RUNTIME,
            FLUSH_GROUP,
        }
    )
