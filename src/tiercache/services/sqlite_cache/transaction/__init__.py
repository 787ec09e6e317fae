"""Transaction management for the durable store."""

from tiercache.services.sqlite_cache.transaction.manager import TransactionManager

__all__ = ["TransactionManager"]
