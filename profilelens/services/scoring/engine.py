from typing import Any

from loguru import logger

from profilelens.models.profile import ProfileRecord
from profilelens.models.score import ScoreReport, SectionScore
from profilelens.services.scoring.constants import FAILING_GRADE, GRADE_BREAKPOINTS
from profilelens.services.scoring.criteria import Criterion, round_half_up
from profilelens.services.scoring.rubric import RUBRIC


def calculate_grade(percentage: int | float) -> str:
    for threshold, grade in GRADE_BREAKPOINTS:
        if percentage >= threshold:
            return grade
    return FAILING_GRADE


class ScoringEngine:
    """
    Rule-based profile scorer.

    Every criterion of the rubric is evaluated on its own; scores, maxima and
    detail lines are then summed per section, keeping rubric order. Scoring is
    pure and deterministic, so re-running it on the same profile yields the
    same report.
    """

    def __init__(self, rubric: list[Criterion] | None = None) -> None:
        self.rubric = list(rubric) if rubric is not None else RUBRIC

    @property
    def max_total_score(self) -> int:
        return sum(criterion.max_score for criterion in self.rubric)

    def score(self, profile: ProfileRecord | dict[str, Any]) -> ScoreReport:
        if not isinstance(profile, ProfileRecord):
            profile = ProfileRecord.model_validate(profile or {})

        sections: dict[str, SectionScore] = {}
        for criterion in self.rubric:
            result = criterion.evaluate(profile)
            entry = sections.setdefault(
                criterion.section, SectionScore(section=criterion.section, score=0, max_score=0)
            )
            entry.score += result.score
            entry.max_score += criterion.max_score
            entry.details.append(result.detail)

        total = sum(entry.score for entry in sections.values())
        max_total = self.max_total_score
        percentage = round_half_up(100 * total / max_total) if max_total else 0
        grade = calculate_grade(percentage)

        logger.debug(f"Scored profile {profile.profile_id or '<unknown>'}: {total}/{max_total} ({grade})")
        return ScoreReport(
            total_score=total,
            max_total_score=max_total,
            percentage=percentage,
            grade=grade,
            section_scores=list(sections.values()),
        )


scoring_engine = ScoringEngine()


def score_profile(profile: ProfileRecord | dict[str, Any]) -> ScoreReport:
    return scoring_engine.score(profile)
