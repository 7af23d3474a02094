"""
Scoring constants. Keep these simple and documented.
"""

import re

# Percentage thresholds for letter grades, checked top-down
GRADE_BREAKPOINTS: tuple[tuple[int, str], ...] = (
    (90, "A+"),
    (85, "A"),
    (80, "A-"),
    (75, "B+"),
    (70, "B"),
    (65, "B-"),
    (60, "C+"),
    (55, "C"),
    (50, "C-"),
    (45, "D+"),
    (40, "D"),
    (35, "D-"),
)
FAILING_GRADE: str = "F"

# Profile URLs the network generates look like /in/jane-doe-12345; customized ones do not
GENERATED_URL_PATTERN = re.compile(r"-[0-9]+")

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

HEADLINE_KEYWORD_POINTS: int = 2

HEADLINE_KEYWORDS: tuple[str, ...] = (
    # Professional levels
    "senior",
    "junior",
    "mid",
    "lead",
    "principal",
    "associate",
    "director",
    "manager",
    "head",
    "chief",
    # Professional roles
    "specialist",
    "expert",
    "consultant",
    "advisor",
    "coordinator",
    "supervisor",
    "superintendent",
    # Industry-agnostic skills
    "analyst",
    "strategist",
    "planner",
    "researcher",
    "designer",
    "developer",
    "engineer",
    "architect",
    # Business functions
    "marketing",
    "sales",
    "finance",
    "hr",
    "operations",
    "strategy",
    "business",
    "commercial",
    # Technical areas
    "digital",
    "data",
    "analytics",
    "research",
    "innovation",
    "quality",
    "compliance",
    "risk",
    # Leadership
    "team",
    "project",
    "program",
    "initiative",
    "transformation",
    "change",
    "growth",
    "development",
)
