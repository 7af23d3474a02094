from profilelens.services.scoring.criteria import Criterion, CriterionResult, round_half_up
from profilelens.services.scoring.engine import ScoringEngine, calculate_grade, score_profile, scoring_engine
from profilelens.services.scoring.rubric import MAX_TOTAL_SCORE, RUBRIC

__all__ = [
    "Criterion",
    "CriterionResult",
    "MAX_TOTAL_SCORE",
    "RUBRIC",
    "ScoringEngine",
    "calculate_grade",
    "round_half_up",
    "score_profile",
    "scoring_engine",
]
