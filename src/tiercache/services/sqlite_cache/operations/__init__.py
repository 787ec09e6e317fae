"""Durable store operations module.

This module provides separate operation classes for querying, inserting,
and updating cache rows.
"""

from tiercache.services.sqlite_cache.operations.insert import InsertOperations
from tiercache.services.sqlite_cache.operations.query import QueryOperations
from tiercache.services.sqlite_cache.operations.update import UpdateOperations

__all__ = ["InsertOperations", "QueryOperations", "UpdateOperations"]
