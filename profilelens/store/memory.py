import asyncio
import copy
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger

from profilelens.core.exceptions import TransactionConflict
from profilelens.store.base import BackendTransaction, StorageBackend

T = TypeVar("T")

_DELETED = object()


class _MemoryTransaction(BackendTransaction):
    def __init__(self, backend: "InMemoryBackend") -> None:
        self._backend = backend
        self.read_versions: dict[tuple[str, str], int] = {}
        self.writes: dict[tuple[str, str], Any] = {}

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        key = (collection, document_id)
        if key in self.writes:
            pending = self.writes[key]
            return None if pending is _DELETED else copy.deepcopy(pending)
        self.read_versions.setdefault(key, self._backend._versions[key])
        return await self._backend.get(collection, document_id)

    def set(self, collection: str, document_id: str, document: dict[str, Any]) -> None:
        self.writes[(collection, document_id)] = copy.deepcopy(document)

    def delete(self, collection: str, document_id: str) -> None:
        self.writes[(collection, document_id)] = _DELETED


class InMemoryBackend(StorageBackend):
    """
    Process-local backend keeping documents in nested dicts.

    Every stored document carries a version counter so transactions can detect
    that a document they read was written by someone else before commit.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._versions: dict[tuple[str, str], int] = defaultdict(int)
        self._commit_lock = asyncio.Lock()

    def generate_id(self) -> str:
        return uuid.uuid4().hex

    def _bump(self, collection: str, document_id: str) -> None:
        self._versions[(collection, document_id)] += 1

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        document = self._collections[collection].get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def get_many(self, collection: str, document_ids: list[str]) -> dict[str, dict[str, Any]]:
        stored = self._collections[collection]
        return {doc_id: copy.deepcopy(stored[doc_id]) for doc_id in document_ids if doc_id in stored}

    async def set(self, collection: str, document_id: str, document: dict[str, Any]) -> None:
        self._collections[collection][document_id] = copy.deepcopy(document)
        self._bump(collection, document_id)

    async def set_many(self, collection: str, documents: dict[str, dict[str, Any]]) -> None:
        for document_id, document in documents.items():
            await self.set(collection, document_id, document)

    async def delete(self, collection: str, document_id: str) -> None:
        if self._collections[collection].pop(document_id, None) is not None:
            self._bump(collection, document_id)

    async def delete_many(self, collection: str, document_ids: list[str]) -> None:
        for document_id in document_ids:
            await self.delete(collection, document_id)

    async def list_documents(self, collection: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self._collections[collection].values()]

    async def run_transaction(self, fn: Callable[[BackendTransaction], Awaitable[T]]) -> T:
        txn = _MemoryTransaction(self)
        result = await fn(txn)

        async with self._commit_lock:
            for key, version in txn.read_versions.items():
                if self._versions[key] != version:
                    logger.debug(f"In-memory transaction conflict on {key[0]}/{key[1]}")
                    raise TransactionConflict(f"Document {key[0]}/{key[1]} changed during transaction")
            for (collection, document_id), pending in txn.writes.items():
                if pending is _DELETED:
                    await self.delete(collection, document_id)
                else:
                    await self.set(collection, document_id, pending)
        return result

    def clear(self) -> None:
        self._collections.clear()
        self._versions.clear()
