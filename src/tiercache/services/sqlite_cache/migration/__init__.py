"""Schema management for the durable store."""

from tiercache.services.sqlite_cache.migration.manager import SchemaManager

__all__ = ["SchemaManager"]
