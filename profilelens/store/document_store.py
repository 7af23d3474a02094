import asyncio
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, TypeVar

from loguru import logger
from pydantic_core import to_jsonable_python

from profilelens.core.config import settings
from profilelens.core.exceptions import NotFoundError, ProfileLensError, StoreError, TransactionConflict
from profilelens.store.base import BackendTransaction, StorageBackend
from profilelens.store.query import Filter, OrderBy, Page, QueryResult, apply_filters, sort_documents

T = TypeVar("T")

# Largest number of ids looked up in one backend multi-get
GET_MANY_CHUNK_SIZE = 10

RESERVED_FIELDS = ("id", "createdAt", "updatedAt")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


@contextmanager
def _store_operation(operation: str, collection: str) -> Iterator[None]:
    """Wrap backend failures into StoreError, letting domain errors through."""
    try:
        yield
    except ProfileLensError:
        raise
    except Exception as exc:
        logger.error(f"Store operation '{operation}' on '{collection}' failed: {exc}")
        raise StoreError(operation, exc) from exc


class StoreTransaction:
    """Collection-scoped view of a backend transaction that keeps timestamps managed."""

    def __init__(self, store: "DocumentStore", txn: BackendTransaction) -> None:
        self._store = store
        self._txn = txn

    async def get(self, document_id: str) -> dict[str, Any] | None:
        return await self._txn.get(self._store.collection, document_id)

    async def save_or_update(self, document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        existing = await self.get(document_id)
        document = self._store._merge(document_id, existing, data)
        self._txn.set(self._store.collection, document_id, document)
        return document

    async def update(self, document_id: str, partial: dict[str, Any]) -> dict[str, Any]:
        existing = await self.get(document_id)
        if existing is None:
            raise NotFoundError(self._store.collection, document_id)
        document = self._store._merge(document_id, existing, partial)
        self._txn.set(self._store.collection, document_id, document)
        return document

    def delete(self, document_id: str) -> None:
        self._txn.delete(self._store.collection, document_id)

    def scoped(self, store: "DocumentStore") -> "StoreTransaction":
        """View of the same transaction over another collection, e.g. a subcollection."""
        return StoreTransaction(store, self._txn)


class DocumentStore:
    """
    Collection-scoped document CRUD over a StorageBackend.

    The store assigns ids, stamps createdAt/updatedAt on every write and wraps
    backend failures into StoreError. Documents are returned as plain dicts that
    include their "id".
    """

    def __init__(
        self,
        backend: StorageBackend,
        collection: str,
        clock: Callable[[], datetime] | None = None,
        batch_limit: int | None = None,
        transaction_attempts: int | None = None,
    ) -> None:
        if not collection:
            raise ValueError("collection is required")
        self.backend = backend
        self.collection = collection
        self._clock = clock or utc_now
        self.batch_limit = batch_limit or settings.STORE_BATCH_LIMIT
        self.transaction_attempts = max(1, transaction_attempts or settings.STORE_TRANSACTION_ATTEMPTS)

    # Helpers

    def _now(self) -> datetime:
        return _parse_timestamp(self._clock()) or utc_now()

    @staticmethod
    def _payload(data: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in to_jsonable_python(dict(data)).items() if k not in RESERVED_FIELDS}

    def _new_document(self, document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        now = self._now().isoformat()
        return {"id": document_id, **self._payload(data), "createdAt": now, "updatedAt": now}

    def _merge(self, document_id: str, existing: dict[str, Any] | None, data: dict[str, Any]) -> dict[str, Any]:
        if existing is None:
            return self._new_document(document_id, data)

        now = self._now()
        previous = _parse_timestamp(existing.get("updatedAt"))
        # updatedAt never moves backwards for a document
        if previous is not None and previous > now:
            now = previous
        merged = {**existing, **self._payload(data)}
        merged["id"] = document_id
        merged["createdAt"] = existing.get("createdAt") or now.isoformat()
        merged["updatedAt"] = now.isoformat()
        return merged

    # Create

    async def save(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a document under a freshly generated id."""
        with _store_operation("save", self.collection):
            document_id = self.backend.generate_id()
            document = self._new_document(document_id, data)
            await self.backend.set(self.collection, document_id, document)
            return document

    async def save_batch(self, data_list: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Create several documents in one backend round trip.

        Each document is written atomically but the batch is not; the result
        keeps the input order.
        """
        if len(data_list) > self.batch_limit:
            raise StoreError("save_batch", f"batch of {len(data_list)} exceeds limit of {self.batch_limit}")
        if not data_list:
            return []
        with _store_operation("save_batch", self.collection):
            documents = [self._new_document(self.backend.generate_id(), data) for data in data_list]
            await self.backend.set_many(self.collection, {doc["id"]: doc for doc in documents})
            return documents

    # Read

    async def get_by_id(self, document_id: str) -> dict[str, Any] | None:
        with _store_operation("get_by_id", self.collection):
            return await self.backend.get(self.collection, document_id)

    async def get_by_ids(self, document_ids: list[str]) -> list[dict[str, Any] | None]:
        """
        Fetch several documents, preserving input order and length.

        Missing ids map to None. Lookups are chunked so the backend never sees
        more than GET_MANY_CHUNK_SIZE ids at once.
        """
        if not document_ids:
            return []
        with _store_operation("get_by_ids", self.collection):
            unique_ids = list(dict.fromkeys(document_ids))
            found: dict[str, dict[str, Any]] = {}
            for start in range(0, len(unique_ids), GET_MANY_CHUNK_SIZE):
                chunk = unique_ids[start : start + GET_MANY_CHUNK_SIZE]
                found.update(await self.backend.get_many(self.collection, chunk))
            return [dict(found[doc_id]) if doc_id in found else None for doc_id in document_ids]

    async def get_all(self) -> list[dict[str, Any]]:
        with _store_operation("get_all", self.collection):
            return sort_documents(await self.backend.list_documents(self.collection), None)

    async def exists(self, document_id: str) -> bool:
        with _store_operation("exists", self.collection):
            return await self.backend.get(self.collection, document_id) is not None

    async def count(self, filters: list[Filter] | None = None) -> int:
        with _store_operation("count", self.collection):
            documents = await self.backend.list_documents(self.collection)
            return len(apply_filters(documents, filters))

    async def query(
        self,
        filters: list[Filter] | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> QueryResult:
        """
        Filter, order and slice the collection.

        Offsets are applied by fetching every match and slicing, which is fine
        for small collections; use get_paginated for anything large.
        """
        with _store_operation("query", self.collection):
            documents = await self.backend.list_documents(self.collection)
            matches = sort_documents(apply_filters(documents, filters), order_by)
            total = len(matches)
            start = max(offset or 0, 0)
            end = start + limit if limit is not None else total
            data = matches[start:end]
            return QueryResult(data=data, total=total, has_more=start + len(data) < total)

    async def get_paginated(
        self,
        limit: int = 20,
        cursor: str | None = None,
        order_by: OrderBy | None = None,
    ) -> Page:
        """
        Cursor-based pagination.

        The cursor is the id of the last document of the previous page. One
        extra document is fetched to tell whether another page exists.
        """
        if limit <= 0:
            raise StoreError("get_paginated", f"limit must be positive, got {limit}")
        with _store_operation("get_paginated", self.collection):
            documents = sort_documents(await self.backend.list_documents(self.collection), order_by)
            start = 0
            if cursor:
                positions = [i for i, doc in enumerate(documents) if doc.get("id") == cursor]
                if not positions:
                    raise NotFoundError(self.collection, cursor)
                start = positions[0] + 1

            window = documents[start : start + limit + 1]
            data = window[:limit]
            return Page(
                data=data,
                has_more=len(window) > limit,
                cursor=data[-1]["id"] if data else None,
            )

    # Update

    async def update(self, document_id: str, partial: dict[str, Any]) -> dict[str, Any]:
        """Merge fields into an existing document; NotFoundError if it is absent."""
        with _store_operation("update", self.collection):
            existing = await self.backend.get(self.collection, document_id)
            if existing is None:
                raise NotFoundError(self.collection, document_id)
            document = self._merge(document_id, existing, partial)
            await self.backend.set(self.collection, document_id, document)
            return document

    async def save_or_update(self, document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Idempotent upsert.

        Creates the document with both timestamps when absent, otherwise merges
        data over the stored fields and bumps updatedAt only.
        """
        with _store_operation("save_or_update", self.collection):
            existing = await self.backend.get(self.collection, document_id)
            document = self._merge(document_id, existing, data)
            await self.backend.set(self.collection, document_id, document)
            return document

    # Delete

    async def delete(self, document_id: str) -> None:
        with _store_operation("delete", self.collection):
            await self.backend.delete(self.collection, document_id)

    async def delete_batch(self, document_ids: list[str]) -> None:
        if not document_ids:
            return
        with _store_operation("delete_batch", self.collection):
            await self.backend.delete_many(self.collection, list(dict.fromkeys(document_ids)))

    # Transactions and nesting

    async def run_transaction(self, fn: Callable[[StoreTransaction], Awaitable[T]]) -> T:
        """
        Run fn atomically, retrying when the backend reports a write conflict.

        fn may be called more than once, so it must not perform external side
        effects that are unsafe to repeat.
        """
        for attempt in range(1, self.transaction_attempts + 1):
            try:
                with _store_operation("run_transaction", self.collection):
                    return await self.backend.run_transaction(lambda txn: fn(StoreTransaction(self, txn)))
            except TransactionConflict as exc:
                if attempt == self.transaction_attempts:
                    logger.error(f"Transaction on '{self.collection}' failed after {attempt} attempts: {exc}")
                    raise StoreError("run_transaction", exc) from exc
                wait_time = 0.05 * (2 ** (attempt - 1))
                logger.warning(
                    f"Transaction conflict on '{self.collection}'. "
                    f"Retrying in {wait_time}s... (Attempt {attempt}/{self.transaction_attempts})"
                )
                await asyncio.sleep(wait_time)
        raise StoreError("run_transaction", "no attempts made")

    def sibling(self, name: str) -> "DocumentStore":
        """Return a store for another top-level collection on the same backend and clock."""
        return DocumentStore(
            self.backend,
            name,
            clock=self._clock,
            batch_limit=self.batch_limit,
            transaction_attempts=self.transaction_attempts,
        )

    def subcollection(self, parent_id: str, name: str) -> "DocumentStore":
        """Return a store for the collection nested under one of this collection's documents."""
        return DocumentStore(
            self.backend,
            f"{self.collection}/{parent_id}/{name}",
            clock=self._clock,
            batch_limit=self.batch_limit,
            transaction_attempts=self.transaction_attempts,
        )
