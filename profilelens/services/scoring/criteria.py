import math
from typing import Annotated, Any, Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, Field

from profilelens.models.profile import ProfileRecord
from profilelens.services.scoring.constants import (
    EMAIL_PATTERN,
    GENERATED_URL_PATTERN,
    HEADLINE_KEYWORD_POINTS,
    HEADLINE_KEYWORDS,
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def proportional(measured: int, threshold: int, max_score: int) -> int:
    """Partial credit for measured/threshold, clamped to [0, max_score]."""
    if threshold <= 0:
        return max_score
    return max(0, min(max_score, round_half_up(measured / threshold * max_score)))


def word_count(text: str | None) -> int:
    return len(text.split()) if text else 0


def _text(profile: ProfileRecord, field: str) -> str | None:
    value = getattr(profile, field, None)
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def _items(profile: ProfileRecord, field: str) -> list[Any]:
    value = getattr(profile, field, None)
    return value if isinstance(value, list) else []


class CriterionResult(BaseModel):
    score: int
    detail: str


class BaseCriterion(BaseModel):
    section: str
    max_score: int = Field(ge=0)

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        raise NotImplementedError

    def _result(self, score: int, message: str) -> CriterionResult:
        score = max(0, min(score, self.max_score))
        return CriterionResult(score=score, detail=f"{message} ({score}/{self.max_score})")


def _url_slug(url: str) -> str:
    """Path part of a profile URL after /in/, ignoring query string and fragment."""
    parts = urlsplit(url if "://" in url else f"https://{url}")
    segments = [seg for seg in parts.path.split("/") if seg]
    if "in" in segments and segments.index("in") + 1 < len(segments):
        return segments[segments.index("in") + 1]
    return "/".join(segments)


class CustomUrlCriterion(BaseCriterion):
    """Full marks for a customized profile URL (no generated "-12345" suffix)."""

    kind: Literal["custom_url"] = "custom_url"

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        url = profile.input_url or profile.url
        if not url:
            return self._result(0, "No profile URL")
        if GENERATED_URL_PATTERN.search(_url_slug(url)):
            return self._result(0, f"Profile URL is not customized: {url}")
        return self._result(self.max_score, f"Custom profile URL: {url}")


class PresenceCriterion(BaseCriterion):
    kind: Literal["presence"] = "presence"
    field: str
    label: str

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        value = _text(profile, self.field)
        if value is None:
            return self._result(0, f"No {self.label.lower()} specified")
        return self._result(self.max_score, f"{self.label}: {value.strip()}")


class WordLengthCriterion(BaseCriterion):
    kind: Literal["word_length"] = "word_length"
    field: str
    label: str
    min_words: int = Field(gt=0)

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        words = word_count(_text(profile, self.field))
        score = proportional(words, self.min_words, self.max_score)
        return self._result(score, f"{self.label}: {words} words (min: {self.min_words})")


class KeywordCriterion(BaseCriterion):
    kind: Literal["keywords"] = "keywords"
    field: str
    label: str
    keywords: tuple[str, ...] = HEADLINE_KEYWORDS
    points_per_match: int = HEADLINE_KEYWORD_POINTS

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        text = (_text(profile, self.field) or "").lower()
        found = [keyword for keyword in dict.fromkeys(self.keywords) if keyword in text] if text else []
        score = len(found) * self.points_per_match
        listed = f" ({', '.join(found)})" if found else ""
        return self._result(score, f"{self.label} keywords: {len(found)} found{listed}")


class EmailCriterion(BaseCriterion):
    kind: Literal["email"] = "email"
    field: str
    label: str

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        text = _text(profile, self.field)
        if text and EMAIL_PATTERN.search(text):
            return self._result(self.max_score, f"Email found in {self.label.lower()}")
        return self._result(0, f"No email in {self.label.lower()}")


class AnyDescriptionCriterion(BaseCriterion):
    """Full marks when at least one experience carries a non-blank description."""

    kind: Literal["any_description"] = "any_description"
    label: str = "Experience descriptions"

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        total = len(profile.experiences)
        described = sum(1 for exp in profile.experiences if exp.description and exp.description.strip())
        score = self.max_score if described else 0
        return self._result(score, f"{self.label}: {described} of {total} positions described")


class CountCriterion(BaseCriterion):
    """Proportional credit for the number of items in a list section."""

    kind: Literal["count"] = "count"
    field: str
    label: str
    min_count: int = Field(gt=0)

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        count = len(_items(profile, self.field))
        score = proportional(count, self.min_count, self.max_score)
        return self._result(score, f"{self.label}: {count} (min: {self.min_count})")


class MinimumCountCriterion(BaseCriterion):
    """All-or-nothing: full marks once a list section reaches min_count items."""

    kind: Literal["minimum_count"] = "minimum_count"
    field: str
    label: str
    min_count: int = Field(default=1, gt=0)

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        count = len(_items(profile, self.field))
        score = self.max_score if count >= self.min_count else 0
        return self._result(score, f"{self.label}: {count} (min: {self.min_count})")


class ContactCriterion(BaseCriterion):
    kind: Literal["contact"] = "contact"

    def evaluate(self, profile: ProfileRecord) -> CriterionResult:
        present = (
            profile.followers_count is not None or profile.connections_count is not None or bool(profile.picture_url)
        )
        if present:
            return self._result(self.max_score, "Contact info present")
        return self._result(0, "No contact info")


Criterion = Annotated[
    CustomUrlCriterion
    | PresenceCriterion
    | WordLengthCriterion
    | KeywordCriterion
    | EmailCriterion
    | AnyDescriptionCriterion
    | CountCriterion
    | MinimumCountCriterion
    | ContactCriterion,
    Field(discriminator="kind"),
]
