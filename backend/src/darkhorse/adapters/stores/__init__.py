"""Store adapters."""

from darkhorse.adapters.stores.postgres import PostgresStoreRepository

__all__ = ["PostgresStoreRepository"]
