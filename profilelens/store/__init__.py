"""
Document store.

Collection-scoped CRUD, batching, pagination and transactions over a pluggable
StorageBackend (Redis in production, in-memory for tests and local runs).
"""

from profilelens.core.config import settings
from profilelens.store.base import BackendTransaction, StorageBackend
from profilelens.store.document_store import DocumentStore, StoreTransaction
from profilelens.store.memory import InMemoryBackend
from profilelens.store.query import Filter, OrderBy, Page, QueryResult
from profilelens.store.redis_backend import RedisBackend


def create_backend(kind: str | None = None) -> StorageBackend:
    kind = kind or settings.STORE_BACKEND
    if kind == "memory":
        return InMemoryBackend()
    if kind == "redis":
        return RedisBackend()
    raise ValueError(f"Unknown store backend: {kind}")


__all__ = [
    "BackendTransaction",
    "DocumentStore",
    "Filter",
    "InMemoryBackend",
    "OrderBy",
    "Page",
    "QueryResult",
    "RedisBackend",
    "StorageBackend",
    "StoreTransaction",
    "create_backend",
]
