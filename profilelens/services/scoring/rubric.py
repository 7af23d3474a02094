from typing import Any

from pydantic import TypeAdapter

from profilelens.services.scoring.criteria import Criterion

# One point each for showing the section at all
_OPTIONAL_SECTIONS: tuple[tuple[str, str, str], ...] = (
    ("publications", "publications", "Publications"),
    ("languages", "languages", "Languages"),
    ("certificates", "certifications", "Certificates"),
    ("honorsAwards", "honors", "Honors & awards"),
    ("volunteer", "volunteer", "Volunteer experience"),
    ("patents", "patents", "Patents"),
    ("testScores", "test_scores", "Test scores"),
    ("organizations", "organizations", "Organizations"),
    ("featured", "featured", "Featured"),
    ("projects", "projects", "Projects"),
    ("recommendations", "recommendations", "Recommendations"),
    ("causes", "causes", "Causes"),
)

RUBRIC_DATA: list[dict[str, Any]] = [
    {"section": "linkedInUrl", "kind": "custom_url", "max_score": 5},
    {"section": "country", "kind": "presence", "field": "country", "label": "Country", "max_score": 5},
    {
        "section": "headline",
        "kind": "word_length",
        "field": "headline",
        "label": "Headline",
        "min_words": 10,
        "max_score": 10,
    },
    {"section": "headline", "kind": "keywords", "field": "headline", "label": "Headline", "max_score": 10},
    {
        "section": "summary",
        "kind": "word_length",
        "field": "summary",
        "label": "Summary",
        "min_words": 200,
        "max_score": 20,
    },
    {"section": "summary", "kind": "email", "field": "summary", "label": "Summary", "max_score": 10},
    {"section": "experiences", "kind": "any_description", "max_score": 10},
    {
        "section": "experiences",
        "kind": "count",
        "field": "experiences",
        "label": "Experiences",
        "min_count": 3,
        "max_score": 10,
    },
    {
        "section": "education",
        "kind": "count",
        "field": "education",
        "label": "Education",
        "min_count": 1,
        "max_score": 10,
    },
    {"section": "skills", "kind": "count", "field": "skills", "label": "Skills", "min_count": 3, "max_score": 15},
    *[
        {"section": section, "kind": "minimum_count", "field": field, "label": label, "min_count": 1, "max_score": 1}
        for section, field, label in _OPTIONAL_SECTIONS
    ],
    {"section": "contactInfo", "kind": "contact", "max_score": 1},
]

criteria_adapter = TypeAdapter(list[Criterion])

RUBRIC: list[Criterion] = criteria_adapter.validate_python(RUBRIC_DATA)

MAX_TOTAL_SCORE: int = sum(criterion.max_score for criterion in RUBRIC)
