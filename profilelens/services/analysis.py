from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from profilelens.core.config import settings
from profilelens.core.exceptions import NotFoundError, ProfileLensError, ScrapeError, ValidationError
from profilelens.core.security import redact_identifier
from profilelens.models.analysis import AnalysisOutcome, ServiceResult
from profilelens.models.profile import ProfileRecord
from profilelens.models.score import ScoreReport
from profilelens.models.user import UserObject
from profilelens.services.gemini import AICollaborator, gemini_service
from profilelens.services.identity import (
    canonical_url,
    check_freshness,
    derive_user_id,
    extract_profile_id,
    normalize_profile_url,
)
from profilelens.services.payload import extract_profile_payload
from profilelens.services.profile_repository import ProfileRepository, profile_repository
from profilelens.services.scoring import ScoringEngine, scoring_engine
from profilelens.services.scraper import ApifyScraperClient, ScraperCollaborator
from profilelens.store.document_store import utc_now

# Written by the optimization flow; a re-analysis must not reset them
OPTIMIZATION_FIELDS = {"optimized_content", "total_optimizations", "last_optimized_at"}

UNEXPECTED_ERROR_MESSAGE = "Unexpected error while analyzing profile"


class AnalysisState(str, Enum):
    START = "start"
    KEY_DERIVED = "key_derived"
    CACHE_CHECKED = "cache_checked"
    CACHE_HIT_SCORED = "cache_hit_scored"
    FETCHING = "fetching"
    FETCHED = "fetched"
    SCORED = "scored"
    ENRICHING = "enriching"
    ENRICHED = "enriched"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"


class _Run:
    """Tracks the state of one analyze call for logging."""

    def __init__(self, identifier: str) -> None:
        self.identifier = redact_identifier(identifier)
        self.state = AnalysisState.START

    def advance(self, state: AnalysisState) -> None:
        logger.debug(f"Analysis {self.identifier}: {self.state.value} -> {state.value}")
        self.state = state


def _failure(error: BaseException, message: str | None = None) -> dict[str, Any]:
    return {
        "success": False,
        "error": message or getattr(error, "message", None) or str(error),
        "error_type": type(error).__name__,
    }


class ProfileAnalysisService:
    """
    Cache-aside analysis of professional profiles.

    A fresh stored User Object is served without scraping; otherwise the
    profile is scraped, scored, enriched by the AI collaborator and upserted.
    The public operations never raise: failures come back as unsuccessful
    results carrying a readable message.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        scraper: ScraperCollaborator,
        ai: AICollaborator,
        scorer: ScoringEngine | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.scraper = scraper
        self.ai = ai
        self.scorer = scorer or scoring_engine
        self._clock = clock or utc_now

    async def analyze(
        self, identifier: str, language: str | None = None, force_refresh: bool = False
    ) -> AnalysisOutcome:
        language = language or settings.DEFAULT_LANGUAGE
        run = _Run(identifier or "")
        try:
            canonical_key = normalize_profile_url(identifier)
            run.advance(AnalysisState.KEY_DERIVED)

            existing = await self.repository.find_by_canonical_key(canonical_key)
            verdict = check_freshness(existing, now=self._clock())
            run.advance(AnalysisState.CACHE_CHECKED)

            if verdict.valid and not force_refresh:
                outcome = await self._serve_cached(verdict.record, language, run)
            else:
                if existing is not None:
                    reason = "forced refresh" if force_refresh else "stale record"
                    logger.info(f"Re-fetching {redact_identifier(canonical_key)} ({reason})")
                outcome = await self._fetch_and_store(canonical_key, existing, language, run)

            run.advance(AnalysisState.DONE)
            return outcome
        except ProfileLensError as e:
            run.advance(AnalysisState.FAILED)
            logger.warning(f"Analysis failed for {run.identifier}: {e.message}")
            return AnalysisOutcome(**_failure(e))
        except Exception as e:
            run.advance(AnalysisState.FAILED)
            logger.exception(f"Unexpected error analyzing {run.identifier}: {e}")
            return AnalysisOutcome(**_failure(e, UNEXPECTED_ERROR_MESSAGE))

    async def _serve_cached(self, user: UserObject, language: str, run: _Run) -> AnalysisOutcome:
        report = self.scorer.score(user.profile)
        run.advance(AnalysisState.CACHE_HIT_SCORED)

        analysis = user.analysis
        if analysis is None:
            analysis = await self.ai.generate_analysis(user.profile, language)
            saved = await self.repository.attach_analysis(user.user_id, analysis)
            if not saved.ok:
                logger.warning(
                    f"Serving analysis for {redact_identifier(user.user_id)} without saving it: {saved.error}"
                )

        logger.info(f"Cache hit for {redact_identifier(user.canonical_key)}")
        return AnalysisOutcome(
            success=True,
            profile=user.profile,
            analysis=analysis,
            score_report=report,
            cached=True,
            timestamp=user.timestamp,
            user_id=user.id or user.user_id,
        )

    async def _fetch_and_store(
        self, canonical_key: str, existing: UserObject | None, language: str, run: _Run
    ) -> AnalysisOutcome:
        url = canonical_url(canonical_key)
        run.advance(AnalysisState.FETCHING)
        payload = await self.scraper.fetch_profile(url)
        profile = self._to_profile(extract_profile_payload(payload))
        if not profile.url and not profile.input_url:
            profile.url = url
        run.advance(AnalysisState.FETCHED)

        report = self.scorer.score(profile)
        run.advance(AnalysisState.SCORED)

        run.advance(AnalysisState.ENRICHING)
        analysis = await self.ai.generate_analysis(profile, language)
        run.advance(AnalysisState.ENRICHED)

        profile_id = extract_profile_id(profile)
        if existing is not None:
            user_id = existing.id or existing.user_id
        else:
            user_id = derive_user_id(profile_id, canonical_key)
        now = self._clock()
        user = UserObject(
            user_id=user_id,
            profile_id=profile_id,
            canonical_key=canonical_key,
            url=url,
            profile=profile,
            analysis=analysis,
            total_analyses=(existing.total_analyses if existing else 0) + 1,
            timestamp=now,
            last_analyzed_at=now,
        )
        saved = await self.repository.upsert_user(user, exclude=OPTIMIZATION_FIELDS if existing else None)
        run.advance(AnalysisState.PERSISTED)

        return AnalysisOutcome(
            success=True,
            profile=saved.profile,
            analysis=saved.analysis,
            score_report=report,
            cached=False,
            timestamp=saved.timestamp,
            user_id=saved.user_id,
        )

    @staticmethod
    def _to_profile(raw: dict[str, Any]) -> ProfileRecord:
        try:
            return ProfileRecord.model_validate(raw)
        except PydanticValidationError as e:
            raise ScrapeError(f"Scraper returned a malformed profile: {e.error_count()} error(s)") from e

    def score(self, profile: ProfileRecord | dict[str, Any] | list[Any]) -> ServiceResult[ScoreReport]:
        """Score a raw scraper payload or an already normalized record, without any I/O."""
        try:
            if not isinstance(profile, ProfileRecord):
                if not profile:
                    raise ValidationError("Profile data is required")
                profile = self._to_profile(extract_profile_payload(profile))
            return ServiceResult[ScoreReport](success=True, data=self.scorer.score(profile))
        except ProfileLensError as e:
            return ServiceResult[ScoreReport](**_failure(e))

    async def get_user_object(self, user_id: str) -> ServiceResult[UserObject]:
        try:
            if not user_id:
                raise ValidationError("User ID is required")
            user = await self.repository.get_user(user_id)
            if user is None:
                raise NotFoundError(self.repository.store.collection, user_id)
            return ServiceResult[UserObject](success=True, data=user)
        except ProfileLensError as e:
            return ServiceResult[UserObject](**_failure(e))
        except Exception as e:
            logger.exception(f"Unexpected error loading user {redact_identifier(user_id)}: {e}")
            return ServiceResult[UserObject](**_failure(e, "Unexpected error while loading user"))

    async def close(self) -> None:
        await self.scraper.close()


analysis_service = ProfileAnalysisService(profile_repository, ApifyScraperClient(), gemini_service)
