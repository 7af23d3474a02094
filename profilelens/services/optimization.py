import re
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from typing import Any

from loguru import logger

from profilelens.core.config import settings
from profilelens.core.exceptions import NotFoundError, ProfileLensError, QuotaExceededError, ValidationError
from profilelens.core.security import redact_identifier
from profilelens.models.analysis import ServiceResult
from profilelens.models.user import ContentMetadata, OptimizedSection, UserStats
from profilelens.services.gemini import AICollaborator, gemini_service
from profilelens.services.profile_repository import ProfileRepository, profile_repository
from profilelens.store import Filter, OrderBy, StoreTransaction
from profilelens.store.document_store import utc_now

_ARABIC_PATTERN = re.compile(r"[\u0600-\u06FF]")
_LATIN_PATTERN = re.compile(r"[a-zA-Z]")


def detect_language(content: str) -> str:
    if _ARABIC_PATTERN.search(content):
        return "ar"
    if _LATIN_PATTERN.search(content):
        return "en"
    return "unknown"


def content_metadata(content: str) -> ContentMetadata:
    return ContentMetadata(
        word_count=len(content.split()),
        character_count=len(content),
        language=detect_language(content),
    )


class SectionOptimizationService:
    """AI rewrites of single profile sections, recorded on the User Object and in its history."""

    def __init__(
        self,
        repository: ProfileRepository,
        ai: AICollaborator,
        max_optimizations: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.ai = ai
        self.max_optimizations = max_optimizations or settings.MAX_OPTIMIZATIONS_PER_PROFILE
        self._clock = clock or utc_now

    def _check_quota(self, user_id: str, used: int) -> None:
        if used >= self.max_optimizations:
            raise QuotaExceededError(
                f"User {user_id} has used all {self.max_optimizations} section optimizations"
            )

    async def optimize_section(
        self, user_id: str, section: str, content: str, language: str | None = None
    ) -> ServiceResult[OptimizedSection]:
        language = language or settings.DEFAULT_LANGUAGE
        try:
            if not user_id:
                raise ValidationError("User ID is required")
            if not section or not section.strip():
                raise ValidationError("Section is required")
            if not content or not content.strip():
                raise ValidationError("Original content is required")

            user = await self.repository.get_user(user_id)
            if user is None:
                raise NotFoundError(self.repository.store.collection, user_id)
            self._check_quota(user_id, user.total_optimizations)

            optimized = await self.ai.generate_optimized_section(content, section, language)
            entry = OptimizedSection(
                section=section,
                original_content=content,
                optimized_content=optimized,
                section_type=section,
                metadata=content_metadata(optimized),
                optimized_at=self._clock(),
            )
            await self._record(user_id, entry)
            logger.info(f"Saved {section} optimization for {redact_identifier(user_id)}")
            return ServiceResult[OptimizedSection](success=True, data=entry)
        except ProfileLensError as e:
            logger.warning(f"Section optimization failed for {redact_identifier(user_id)}: {e.message}")
            return ServiceResult[OptimizedSection](success=False, error=e.message, error_type=type(e).__name__)
        except Exception as e:
            logger.exception(f"Unexpected error optimizing section for {redact_identifier(user_id)}: {e}")
            return ServiceResult[OptimizedSection](
                success=False, error="Unexpected error while optimizing section", error_type=type(e).__name__
            )

    async def _record(self, user_id: str, entry: OptimizedSection) -> None:
        """Append the entry to the User Object and its history in one transaction."""
        entry_doc = entry.model_dump(by_alias=True, mode="json")
        history = self.repository.optimizations(user_id)
        history_id = history.backend.generate_id()

        async def append(txn: StoreTransaction) -> dict[str, Any]:
            current = await txn.get(user_id)
            if current is None:
                raise NotFoundError(self.repository.store.collection, user_id)
            used = int(current.get("totalOptimizations") or 0)
            self._check_quota(user_id, used)
            await txn.scoped(history).save_or_update(history_id, entry_doc)
            return await txn.update(
                user_id,
                {
                    "optimizedContent": [*(current.get("optimizedContent") or []), entry_doc],
                    "totalOptimizations": used + 1,
                    "lastOptimizedAt": entry_doc["optimizedAt"],
                },
            )

        await self.repository.store.run_transaction(append)

    async def get_optimization_history(
        self, user_id: str, section: str | None = None
    ) -> ServiceResult[list[OptimizedSection]]:
        """Past optimizations for a user, newest first, optionally for one section."""
        try:
            if not user_id:
                raise ValidationError("User ID is required")
            if not await self.repository.store.exists(user_id):
                raise NotFoundError(self.repository.store.collection, user_id)
            filters = [Filter(field="section", value=section)] if section else None
            result = await self.repository.optimizations(user_id).query(
                filters=filters, order_by=OrderBy(field="optimizedAt", direction="desc")
            )
            entries = [OptimizedSection.model_validate(doc) for doc in result.data]
            return ServiceResult[list[OptimizedSection]](success=True, data=entries)
        except ProfileLensError as e:
            return ServiceResult[list[OptimizedSection]](success=False, error=e.message, error_type=type(e).__name__)

    async def get_user_stats(self, user_id: str) -> ServiceResult[UserStats]:
        try:
            if not user_id:
                raise ValidationError("User ID is required")
            user = await self.repository.get_user(user_id)
            if user is None:
                raise NotFoundError(self.repository.store.collection, user_id)
            sections = Counter(entry.section for entry in user.optimized_content)
            stats = UserStats(
                total_optimizations=user.total_optimizations,
                sections_count=dict(sections),
                last_optimized_at=user.last_optimized_at,
                profile_data_exists=bool(user.profile.model_dump(exclude_defaults=True)),
            )
            return ServiceResult[UserStats](success=True, data=stats)
        except ProfileLensError as e:
            return ServiceResult[UserStats](success=False, error=e.message, error_type=type(e).__name__)


optimization_service = SectionOptimizationService(profile_repository, gemini_service)
