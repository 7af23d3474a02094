import hashlib
from typing import Any

from loguru import logger

from profilelens.core.config import settings
from profilelens.core.exceptions import ProfileLensError
from profilelens.core.security import redact_identifier
from profilelens.models.analysis import SaveResult
from profilelens.models.user import AIAnalysisResult, UserObject
from profilelens.store import DocumentStore, Page, StoreTransaction, create_backend
from profilelens.store.document_store import utc_now


def canonical_key_id(canonical_key: str) -> str:
    """Document id of the pointer for a canonical key in the keys collection."""
    return hashlib.sha256(canonical_key.encode("utf-8")).hexdigest()


class ProfileRepository:
    """
    User Objects persisted in the profiles collection, keyed by user id.

    Each upsert also writes a pointer document (canonical key -> user id) into
    the keys collection in the same transaction, so a canonical key resolves
    with two point reads instead of a collection scan.
    """

    def __init__(self, store: DocumentStore, keys_store: DocumentStore | None = None) -> None:
        self.store = store
        self.keys_store = keys_store or store.sibling(settings.PROFILE_KEYS_COLLECTION)

    @staticmethod
    def to_user(document: dict[str, Any] | None) -> UserObject | None:
        if document is None:
            return None
        return UserObject.model_validate(document)

    async def find_by_canonical_key(self, canonical_key: str) -> UserObject | None:
        """User Object the canonical key points at, if any."""
        pointer = await self.keys_store.get_by_id(canonical_key_id(canonical_key))
        if pointer is None or not pointer.get("userId"):
            return None
        user = await self.get_user(pointer["userId"])
        if user is None:
            logger.warning(
                f"Key pointer for {redact_identifier(canonical_key)} "
                f"references missing user object {redact_identifier(pointer['userId'])}"
            )
        return user

    async def get_user(self, user_id: str) -> UserObject | None:
        return self.to_user(await self.store.get_by_id(user_id))

    async def upsert_user(self, user: UserObject, exclude: set[str] | None = None) -> UserObject:
        document_data = user.to_document(exclude=exclude)

        async def write(txn: StoreTransaction) -> dict[str, Any]:
            document = await txn.save_or_update(user.user_id, document_data)
            await txn.scoped(self.keys_store).save_or_update(
                canonical_key_id(user.canonical_key),
                {"userId": user.user_id, "canonicalKey": user.canonical_key},
            )
            return document

        document = await self.store.run_transaction(write)
        logger.info(f"Saved user object {redact_identifier(user.user_id)}")
        return self.to_user(document)

    async def attach_analysis(self, user_id: str, analysis: AIAnalysisResult) -> SaveResult:
        """Best-effort write of a freshly generated analysis onto a stored User Object."""
        try:
            await self.store.update(
                user_id,
                {
                    "analysis": analysis.model_dump(by_alias=True, mode="json"),
                    "lastAnalyzedAt": utc_now().isoformat(),
                },
            )
        except ProfileLensError as e:
            logger.warning(f"Failed to attach analysis to {redact_identifier(user_id)}: {e.message}")
            return SaveResult.failure(e.message)
        return SaveResult.success()

    async def list_users(self, limit: int = 20, cursor: str | None = None) -> Page:
        return await self.store.get_paginated(limit=limit, cursor=cursor)

    def optimizations(self, user_id: str) -> DocumentStore:
        return self.store.subcollection(user_id, settings.OPTIMIZATIONS_SUBCOLLECTION)


profile_repository = ProfileRepository(DocumentStore(create_backend(), settings.PROFILES_COLLECTION))
