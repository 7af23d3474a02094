import json
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis
from loguru import logger

from profilelens.core.config import settings
from profilelens.core.exceptions import TransactionConflict
from profilelens.store.base import BackendTransaction, StorageBackend

T = TypeVar("T")

_DELETED = object()


class _RedisTransaction(BackendTransaction):
    """Optimistic transaction: WATCH every key read, queue writes for MULTI/EXEC."""

    def __init__(self, backend: "RedisBackend", pipe: Any) -> None:
        self._backend = backend
        self._pipe = pipe
        self.writes: dict[tuple[str, str], Any] = {}

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        pending = self.writes.get((collection, document_id))
        if pending is not None:
            return None if pending is _DELETED else dict(pending)
        key = self._backend._document_key(collection, document_id)
        await self._pipe.watch(key)
        raw = await self._pipe.get(key)
        return self._backend._decode(raw)

    def set(self, collection: str, document_id: str, document: dict[str, Any]) -> None:
        self.writes[(collection, document_id)] = dict(document)

    def delete(self, collection: str, document_id: str) -> None:
        self.writes[(collection, document_id)] = _DELETED


class RedisBackend(StorageBackend):
    """
    Redis-backed document storage.

    Each document is a JSON string under "{prefix}{collection}:{id}" and every
    collection keeps a set of its ids under "{prefix}{collection}:__ids__".
    """

    def __init__(self, url: str | None = None, key_prefix: str | None = None) -> None:
        self._url = url or settings.REDIS_URL
        self._prefix = key_prefix if key_prefix is not None else settings.REDIS_KEY_PREFIX
        self._client: redis.Redis | None = None
        if not self._url:
            logger.warning("REDIS_URL is not set. Document store operations will fail until configured.")

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            logger.info("Creating Redis client for document store")
            self._client = redis.from_url(
                self._url,
                decode_responses=True,
                encoding="utf-8",
                socket_connect_timeout=5,
                socket_timeout=5,
                max_connections=getattr(settings, "REDIS_MAX_CONNECTIONS", 100),
                health_check_interval=30,
                socket_keepalive=True,
            )
        return self._client

    def _document_key(self, collection: str, document_id: str) -> str:
        return f"{self._prefix}{collection}:{document_id}"

    def _index_key(self, collection: str) -> str:
        return f"{self._prefix}{collection}:__ids__"

    @staticmethod
    def _decode(raw: str | None) -> dict[str, Any] | None:
        if not raw:
            return None
        return json.loads(raw)

    def generate_id(self) -> str:
        return uuid.uuid4().hex

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        client = await self.get_client()
        raw = await client.get(self._document_key(collection, document_id))
        return self._decode(raw)

    async def get_many(self, collection: str, document_ids: list[str]) -> dict[str, dict[str, Any]]:
        if not document_ids:
            return {}
        client = await self.get_client()
        raws = await client.mget([self._document_key(collection, doc_id) for doc_id in document_ids])
        found: dict[str, dict[str, Any]] = {}
        for doc_id, raw in zip(document_ids, raws):
            document = self._decode(raw)
            if document is not None:
                found[doc_id] = document
        return found

    async def set(self, collection: str, document_id: str, document: dict[str, Any]) -> None:
        await self.set_many(collection, {document_id: document})

    async def set_many(self, collection: str, documents: dict[str, dict[str, Any]]) -> None:
        if not documents:
            return
        client = await self.get_client()
        async with client.pipeline(transaction=True) as pipe:
            for document_id, document in documents.items():
                pipe.set(self._document_key(collection, document_id), json.dumps(document))
                pipe.sadd(self._index_key(collection), document_id)
            await pipe.execute()

    async def delete(self, collection: str, document_id: str) -> None:
        await self.delete_many(collection, [document_id])

    async def delete_many(self, collection: str, document_ids: list[str]) -> None:
        if not document_ids:
            return
        client = await self.get_client()
        async with client.pipeline(transaction=True) as pipe:
            pipe.delete(*[self._document_key(collection, doc_id) for doc_id in document_ids])
            pipe.srem(self._index_key(collection), *document_ids)
            await pipe.execute()

    async def list_documents(self, collection: str) -> list[dict[str, Any]]:
        client = await self.get_client()
        ids = sorted(await client.smembers(self._index_key(collection)))
        found = await self.get_many(collection, ids)
        return [found[doc_id] for doc_id in ids if doc_id in found]

    async def run_transaction(self, fn: Callable[[BackendTransaction], Awaitable[T]]) -> T:
        client = await self.get_client()
        async with client.pipeline(transaction=True) as pipe:
            txn = _RedisTransaction(self, pipe)
            try:
                result = await fn(txn)
                pipe.multi()
                for (collection, document_id), pending in txn.writes.items():
                    key = self._document_key(collection, document_id)
                    if pending is _DELETED:
                        pipe.delete(key)
                        pipe.srem(self._index_key(collection), document_id)
                    else:
                        pipe.set(key, json.dumps(pending))
                        pipe.sadd(self._index_key(collection), document_id)
                await pipe.execute()
            except redis.WatchError as exc:
                raise TransactionConflict(f"Watched key changed during transaction: {exc}") from exc
        return result

    async def close(self) -> None:
        """Close and disconnect the Redis client"""
        if self._client is not None:
            try:
                await self._client.close()
                logger.info("Document store Redis client closed")
            except Exception as exc:
                logger.warning(f"Failed to close document store Redis client: {exc}")
            finally:
                self._client = None
