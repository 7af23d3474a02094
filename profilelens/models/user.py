from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from profilelens.models.profile import ProfileRecord


class KeywordAnalysis(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    relevant_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)


class AIAnalysisResult(BaseModel):
    """
    Narrative report produced by the AI collaborator.

    The structure follows the JSON the analysis prompt asks for, but the model
    is permissive: unknown keys are kept and single strings are accepted where
    a list is expected.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    summary: str | None = Field(default=None, validation_alias=AliasChoices("summary", "aiSummary", "ai_summary"))
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    analysis_recommendations: dict[str, list[str]] = Field(
        default_factory=dict,
        alias="analysis_recommendations",
        validation_alias=AliasChoices("analysis_recommendations", "analysisRecommendations"),
    )
    industry_insights: str | None = None
    profile_optimization: list[str] = Field(default_factory=list)
    keyword_analysis: KeywordAnalysis = Field(default_factory=KeywordAnalysis)
    competitive_analysis: str | None = None

    @field_validator("strengths", "weaknesses", "profile_optimization", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("analysis_recommendations", mode="before")
    @classmethod
    def _recommendation_lists(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return {}
        return {str(k): ([v] if isinstance(v, str) else list(v or [])) for k, v in value.items()}


class ContentMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    word_count: int = 0
    character_count: int = 0
    language: str | None = None


class OptimizedSection(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    section: str
    original_content: str
    optimized_content: str
    section_type: str | None = None
    metadata: ContentMetadata = Field(default_factory=ContentMetadata)
    optimized_at: datetime


class UserObject(BaseModel):
    """
    Aggregate stored per analysed profile in the profiles collection.

    Field names are persisted in camelCase; createdAt/updatedAt are managed by
    the document store.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str | None = None
    user_id: str
    profile_id: str | None = None
    canonical_key: str
    url: str | None = None
    profile: ProfileRecord
    analysis: AIAnalysisResult | None = None
    optimized_content: list[OptimizedSection] = Field(default_factory=list)
    total_optimizations: int = 0
    total_analyses: int = 0
    timestamp: datetime | None = None
    last_analyzed_at: datetime | None = None
    last_optimized_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_document(self, exclude: set[str] | None = None) -> dict[str, Any]:
        """Serialize for the document store, leaving store-managed fields out."""
        return self.model_dump(
            by_alias=True,
            mode="json",
            exclude={"id", "created_at", "updated_at", *(exclude or ())},
        )


class UserStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_optimizations: int = 0
    sections_count: dict[str, int] = Field(default_factory=dict)
    last_optimized_at: datetime | None = None
    profile_data_exists: bool = False
