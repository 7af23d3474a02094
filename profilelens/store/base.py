from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


class BackendTransaction(ABC):
    """
    Read/write handle passed to a transaction function.

    Reads go to the backend immediately; writes are buffered and applied
    together when the transaction commits.
    """

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    def set(self, collection: str, document_id: str, document: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, collection: str, document_id: str) -> None:
        pass


class StorageBackend(ABC):
    """
    Interface for a document storage backend.

    Documents are plain JSON-compatible dicts stored under an opaque string id
    inside a collection path. Backends do not add timestamps or ids; that is the
    job of DocumentStore.
    """

    @abstractmethod
    def generate_id(self) -> str:
        pass

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    async def get_many(self, collection: str, document_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Return the documents that exist, keyed by id."""
        pass

    @abstractmethod
    async def set(self, collection: str, document_id: str, document: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def set_many(self, collection: str, documents: dict[str, dict[str, Any]]) -> None:
        pass

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> None:
        pass

    @abstractmethod
    async def delete_many(self, collection: str, document_ids: list[str]) -> None:
        pass

    @abstractmethod
    async def list_documents(self, collection: str) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    async def run_transaction(self, fn: Callable[[BackendTransaction], Awaitable[T]]) -> T:
        """
        Run fn once inside a transaction.

        Raises TransactionConflict when a document read inside the transaction
        changed before commit; retrying is up to the caller.
        """
        pass

    async def close(self) -> None:
        return None
