from datetime import datetime, timedelta
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from profilelens.models.profile import ProfileRecord
from profilelens.models.score import ScoreReport
from profilelens.models.user import AIAnalysisResult, UserObject

T = TypeVar("T")


class CacheVerdict(BaseModel):
    valid: bool
    record: UserObject | None = None
    age: timedelta | None = None


class SaveResult(BaseModel):
    """Outcome of a best-effort write whose failure must not fail the caller."""

    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> "SaveResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: BaseException | str) -> "SaveResult":
        return cls(ok=False, error=str(error))


class AnalysisOutcome(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    profile: ProfileRecord | None = None
    analysis: AIAnalysisResult | None = None
    score_report: ScoreReport | None = None
    cached: bool = False
    timestamp: datetime | None = None
    user_id: str | None = None
    error: str | None = None
    error_type: str | None = None


class ServiceResult(BaseModel, Generic[T]):
    """Uniform success/failure envelope returned by the public service operations."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    data: T | None = None
    error: str | None = None
    error_type: str | None = None
