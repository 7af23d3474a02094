"""
Unit tests for the document store over the in-memory backend.
"""

from typing import Any

import pytest
import pytest_asyncio

from profilelens.core.exceptions import NotFoundError, StoreError
from profilelens.store import DocumentStore, Filter, InMemoryBackend, OrderBy, RedisBackend, create_backend
from profilelens.store.document_store import GET_MANY_CHUNK_SIZE


class RecordingBackend(InMemoryBackend):
    """In-memory backend that records the size of every multi-get."""

    def __init__(self) -> None:
        super().__init__()
        self.get_many_sizes: list[int] = []

    async def get_many(self, collection: str, document_ids: list[str]) -> dict[str, dict[str, Any]]:
        self.get_many_sizes.append(len(document_ids))
        return await super().get_many(collection, document_ids)


class BrokenBackend(InMemoryBackend):
    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        raise ConnectionError("connection refused")


@pytest.fixture
def store(backend, clock) -> DocumentStore:
    return DocumentStore(backend, "items", clock=clock)


class TestCreateAndRead:
    """Test cases for save, save_batch and reads."""

    @pytest.mark.asyncio
    async def test_save_stamps_id_and_timestamps(self, store, clock):
        """Test save assigns an id and equal creation/update timestamps."""
        document = await store.save({"name": "a", "id": "ignored", "createdAt": "1999-01-01"})

        assert document["id"] != "ignored"
        assert document["createdAt"] == document["updatedAt"] == clock.now.isoformat()
        assert await store.get_by_id(document["id"]) == document

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        """Test that an unknown id reads as None."""
        assert await store.get_by_id("missing") is None
        assert await store.exists("missing") is False

    @pytest.mark.asyncio
    async def test_save_batch_keeps_order(self, store):
        """Test save_batch returns documents in input order."""
        documents = await store.save_batch([{"n": 1}, {"n": 2}, {"n": 3}])

        assert [d["n"] for d in documents] == [1, 2, 3]
        assert await store.count() == 3

    @pytest.mark.asyncio
    async def test_save_batch_empty_and_over_limit(self, backend, clock):
        """Test empty batches are a no-op and oversized batches are rejected."""
        store = DocumentStore(backend, "items", clock=clock, batch_limit=2)

        assert await store.save_batch([]) == []
        with pytest.raises(StoreError):
            await store.save_batch([{"n": 1}, {"n": 2}, {"n": 3}])
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_get_by_ids_chunks_and_preserves_order(self, clock):
        """Test get_by_ids keeps input order, fills gaps with None and chunks lookups."""
        backend = RecordingBackend()
        store = DocumentStore(backend, "items", clock=clock)
        saved = await store.save_batch([{"n": i} for i in range(25)])
        ids = [d["id"] for d in saved]
        requested = list(reversed(ids)) + ["missing", ids[0]]

        documents = await store.get_by_ids(requested)

        assert len(documents) == len(requested)
        assert [d["n"] for d in documents[:25]] == list(reversed(range(25)))
        assert documents[25] is None
        assert documents[26]["n"] == 0
        assert all(size <= GET_MANY_CHUNK_SIZE for size in backend.get_many_sizes)
        assert sum(backend.get_many_sizes) == 26

    @pytest.mark.asyncio
    async def test_get_all_orders_by_id(self, store):
        """Test get_all returns every document ordered by id."""
        await store.save_or_update("b", {"n": 2})
        await store.save_or_update("a", {"n": 1})

        assert [d["id"] for d in await store.get_all()] == ["a", "b"]


class TestUpdates:
    """Test cases for update and save_or_update."""

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, store):
        """Test update refuses to create documents."""
        with pytest.raises(NotFoundError):
            await store.update("missing", {"x": 1})

    @pytest.mark.asyncio
    async def test_update_merges_and_protects_reserved_fields(self, store, clock):
        """Test update merges fields, ignores id/createdAt and bumps updatedAt."""
        created = await store.save({"a": 1, "b": 2})
        clock.advance(minutes=5)

        updated = await store.update(created["id"], {"b": 3, "id": "other", "createdAt": "2000-01-01"})

        assert updated["id"] == created["id"]
        assert updated["a"] == 1 and updated["b"] == 3
        assert updated["createdAt"] == created["createdAt"]
        assert updated["updatedAt"] == clock.now.isoformat()

    @pytest.mark.asyncio
    async def test_save_or_update_is_idempotent_upsert(self, store, clock):
        """Test two upserts leave one merged document with the original createdAt."""
        first = await store.save_or_update("doc-1", {"a": 1, "b": 1})
        clock.advance(hours=1)

        second = await store.save_or_update("doc-1", {"b": 2, "c": 3})

        assert await store.count() == 1
        assert second == {**first, "b": 2, "c": 3, "updatedAt": clock.now.isoformat()}
        assert second["createdAt"] == first["createdAt"]
        assert second["updatedAt"] > first["updatedAt"]

    @pytest.mark.asyncio
    async def test_updated_at_never_moves_backwards(self, store, clock):
        """Test a clock going backwards does not rewind updatedAt."""
        first = await store.save_or_update("doc-1", {"a": 1})
        clock.advance(hours=-1)

        second = await store.save_or_update("doc-1", {"a": 2})

        assert second["updatedAt"] == first["updatedAt"]


class TestDelete:
    """Test cases for deletes."""

    @pytest.mark.asyncio
    async def test_delete_and_delete_batch(self, store):
        """Test deletes remove documents and tolerate missing ids."""
        saved = await store.save_batch([{"n": 1}, {"n": 2}, {"n": 3}])

        await store.delete(saved[0]["id"])
        await store.delete("missing")
        await store.delete_batch([saved[1]["id"], "missing"])

        assert [d["n"] for d in await store.get_all()] == [3]


class TestQuery:
    """Test cases for filtered queries."""

    @pytest_asyncio.fixture
    async def people(self, store):
        await store.save_or_update("p1", {"name": "Ann", "age": 31, "tags": ["a", "b"], "meta": {"team": "x"}})
        await store.save_or_update("p2", {"name": "Bob", "age": 25, "tags": ["b"], "meta": {"team": "y"}})
        await store.save_or_update("p3", {"name": "Cid", "age": 40, "tags": [], "meta": {"team": "x"}})
        await store.save_or_update("p4", {"name": "Dee"})
        return store

    @pytest.mark.asyncio
    async def test_equality_and_dotted_fields(self, people):
        """Test equality filters on nested fields."""
        result = await people.query(filters=[Filter(field="meta.team", value="x")])

        assert [d["id"] for d in result.data] == ["p1", "p3"]
        assert result.total == 2
        assert result.has_more is False

    @pytest.mark.asyncio
    async def test_range_filters_are_conjunctive(self, people):
        """Test several filters must all match; missing fields never match."""
        result = await people.query(
            filters=[Filter(field="age", op=">=", value=30), Filter(field="age", op="<", value=40)]
        )

        assert [d["id"] for d in result.data] == ["p1"]

    @pytest.mark.asyncio
    async def test_membership_operators(self, people):
        """Test in, not-in and the array operators."""
        assert [d["id"] for d in (await people.query([Filter(field="name", op="in", value=["Bob", "Dee"])])).data] == [
            "p2",
            "p4",
        ]
        assert (await people.query([Filter(field="name", op="not-in", value=["Ann"])])).total == 3
        assert (await people.query([Filter(field="tags", op="array-contains", value="b")])).total == 2
        assert (await people.query([Filter(field="tags", op="array-contains-any", value=["a", "z"])])).total == 1

    @pytest.mark.asyncio
    async def test_order_limit_offset(self, people):
        """Test ordering with limit/offset reports the full match count."""
        result = await people.query(order_by=OrderBy(field="age", direction="desc"), limit=2, offset=1)

        assert [d["id"] for d in result.data] == ["p1", "p2"]
        assert result.total == 4
        assert result.has_more is True


class TestPagination:
    """Test cases for cursor pagination."""

    @pytest.mark.asyncio
    async def test_pages_of_two_over_five(self, store):
        """Test limit 2 over 5 documents yields 2/2/1 with has_more true/true/false."""
        for i in range(5):
            await store.save_or_update(f"doc-{i}", {"n": i})

        pages = []
        cursor = None
        for _ in range(3):
            page = await store.get_paginated(limit=2, cursor=cursor)
            pages.append(page)
            cursor = page.cursor

        assert [len(p.data) for p in pages] == [2, 2, 1]
        assert [p.has_more for p in pages] == [True, True, False]
        assert [d["n"] for p in pages for d in p.data] == [0, 1, 2, 3, 4]
        assert pages[-1].cursor == "doc-4"

    @pytest.mark.asyncio
    async def test_empty_collection(self, store):
        """Test an empty page has no cursor."""
        page = await store.get_paginated(limit=2)

        assert page.data == []
        assert page.has_more is False
        assert page.cursor is None

    @pytest.mark.asyncio
    async def test_unknown_cursor_and_bad_limit(self, store):
        """Test invalid pagination arguments raise."""
        with pytest.raises(NotFoundError):
            await store.get_paginated(limit=2, cursor="nope")
        with pytest.raises(StoreError):
            await store.get_paginated(limit=0)


class TestTransactions:
    """Test cases for run_transaction."""

    @pytest.mark.asyncio
    async def test_commit_applies_all_writes(self, store):
        """Test writes in a transaction are applied together."""
        await store.save_or_update("counter", {"value": 1})

        async def bump(txn):
            current = await txn.get("counter")
            await txn.update("counter", {"value": current["value"] + 1})
            await txn.save_or_update("log", {"entry": "bumped"})
            return current["value"] + 1

        assert await store.run_transaction(bump) == 2
        assert (await store.get_by_id("counter"))["value"] == 2
        assert (await store.get_by_id("log"))["entry"] == "bumped"

    @pytest.mark.asyncio
    async def test_conflict_is_retried(self, store):
        """Test a concurrent write forces a retry that sees the new value."""
        await store.save_or_update("counter", {"value": 1})
        calls = []

        async def bump(txn):
            current = await txn.get("counter")
            calls.append(current["value"])
            if len(calls) == 1:
                await store.update("counter", {"value": 10})
            await txn.update("counter", {"value": current["value"] + 1})

        await store.run_transaction(bump)

        assert calls == [1, 10]
        assert (await store.get_by_id("counter"))["value"] == 11

    @pytest.mark.asyncio
    async def test_conflicts_exhaust_attempts(self, backend, clock):
        """Test repeated conflicts surface as StoreError."""
        store = DocumentStore(backend, "items", clock=clock, transaction_attempts=2)
        await store.save_or_update("counter", {"value": 1})

        async def always_conflicts(txn):
            current = await txn.get("counter")
            await store.update("counter", {"value": current["value"] + 100})
            await txn.update("counter", {"value": 0})

        with pytest.raises(StoreError) as exc_info:
            await store.run_transaction(always_conflicts)
        assert exc_info.value.operation == "run_transaction"

    @pytest.mark.asyncio
    async def test_domain_errors_abort_without_writes(self, store):
        """Test an error raised inside the transaction discards buffered writes."""

        async def fails(txn):
            await txn.save_or_update("a", {"x": 1})
            raise NotFoundError("items", "b")

        with pytest.raises(NotFoundError):
            await store.run_transaction(fails)
        assert await store.exists("a") is False


class TestSubcollectionsAndFailures:
    """Test cases for nested collections, backend selection and error wrapping."""

    @pytest.mark.asyncio
    async def test_subcollection_is_isolated(self, store):
        """Test subcollection documents live under their own path."""
        await store.save_or_update("parent", {"n": 1})
        children = store.subcollection("parent", "children")

        await children.save({"c": 1})

        assert children.collection == "items/parent/children"
        assert await children.count() == 1
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_backend_failure_is_wrapped(self, clock):
        """Test backend exceptions become StoreError with the operation name."""
        store = DocumentStore(BrokenBackend(), "items", clock=clock)

        with pytest.raises(StoreError) as exc_info:
            await store.get_by_id("x")

        assert exc_info.value.operation == "get_by_id"
        assert isinstance(exc_info.value.cause, ConnectionError)

    def test_create_backend(self):
        """Test backend selection by name."""
        assert isinstance(create_backend("memory"), InMemoryBackend)
        assert isinstance(create_backend("redis"), RedisBackend)
        with pytest.raises(ValueError):
            create_backend("sqlite")

    def test_redis_key_layout(self):
        """Test Redis keys are prefixed per collection."""
        redis_backend = RedisBackend(url="redis://localhost:6379/0", key_prefix="t:")

        assert redis_backend._document_key("profiles", "abc") == "t:profiles:abc"
        assert redis_backend._index_key("profiles/abc/optimizations") == "t:profiles/abc/optimizations:__ids__"
