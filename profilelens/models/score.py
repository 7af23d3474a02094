from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SectionScore(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    section: str
    score: int = 0
    max_score: int = 0
    details: list[str] = Field(default_factory=list)


class ScoreReport(BaseModel):
    """Graded breakdown of a profile. Derived on demand, never persisted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_score: int
    max_total_score: int
    percentage: int
    grade: str
    section_scores: list[SectionScore] = Field(default_factory=list)

    def section(self, name: str) -> SectionScore | None:
        return next((s for s in self.section_scores if s.section == name), None)
