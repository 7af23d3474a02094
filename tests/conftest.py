"""
Shared fixtures: an in-memory document store with a controllable clock and
fake scraper / AI collaborators that record their calls.
"""

import os

os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("APP_ENV", "test")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from loguru import logger  # noqa: E402

from profilelens.core.exceptions import AIError, ScrapeError  # noqa: E402
from profilelens.models.profile import ProfileRecord  # noqa: E402
from profilelens.models.user import AIAnalysisResult  # noqa: E402
from profilelens.services.analysis import ProfileAnalysisService  # noqa: E402
from profilelens.services.gemini import AICollaborator  # noqa: E402
from profilelens.services.optimization import SectionOptimizationService  # noqa: E402
from profilelens.services.profile_repository import ProfileRepository  # noqa: E402
from profilelens.services.scraper import ScraperCollaborator  # noqa: E402
from profilelens.store import DocumentStore, InMemoryBackend  # noqa: E402

PROFILE_URL = "https://www.linkedin.com/in/janedoe/"
CANONICAL_KEY = "linkedin.com/in/janedoe"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeScraper(ScraperCollaborator):
    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[str] = []
        self.closed = False

    async def fetch_profile(self, url: str) -> Any:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.payload

    async def close(self) -> None:
        self.closed = True


class FakeAI(AICollaborator):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.analysis_calls: list[tuple[ProfileRecord, str]] = []
        self.optimization_calls: list[tuple[str, str, str]] = []

    async def generate_analysis(self, profile: ProfileRecord, language: str = "en") -> AIAnalysisResult:
        self.analysis_calls.append((profile, language))
        if self.error is not None:
            raise self.error
        return AIAnalysisResult(
            summary=f"{profile.first_name or 'This'}'s profile shows strong technical depth.",
            strengths=["Clear headline"],
            weaknesses=["Few recommendations"],
            analysis_recommendations={"skills": ["Add cloud skills"]},
        )

    async def generate_optimized_section(self, content: str, section: str, language: str = "en") -> str:
        self.optimization_calls.append((content, section, language))
        if self.error is not None:
            raise self.error
        return f"Optimized {section}: {content.strip()}"


def full_profile(**overrides: Any) -> dict[str, Any]:
    """Raw scraper-shaped profile that earns every point of the rubric."""
    summary = " ".join(["word"] * 199) + " contact me at jane@example.com"
    profile = {
        "publicIdentifier": "janedoe",
        "profileId": "ACoAAB12345",
        "inputUrl": "https://www.linkedin.com/in/janedoe",
        "firstName": "Jane",
        "lastName": "Doe",
        "headline": "Senior Data Engineer and Analytics Lead building reliable data platforms for growth teams",
        "about": summary,
        "geoCountryName": "Egypt",
        "positions": [
            {"title": "Senior Data Engineer", "companyName": "Acme", "description": "Built pipelines"},
            {"title": "Data Engineer", "companyName": "Globex", "description": None},
            {"title": "Analyst", "companyName": "Initech"},
        ],
        "educations": [{"schoolName": "Cairo University", "degreeName": "BSc"}],
        "skills": [{"name": "Python"}, {"name": "SQL"}, {"name": "Spark"}],
        "publications": [{"title": "Streaming at scale"}],
        "languages": ["English"],
        "certificates": [{"name": "AWS Data Analytics"}],
        "honorsAwards": [{"title": "Engineer of the year"}],
        "volunteerExperiences": [{"role": "Mentor"}],
        "patents": [{"title": "Data lake compaction"}],
        "testScores": [{"name": "GRE"}],
        "organizations": [{"name": "IEEE"}],
        "featured": [{"title": "Talk"}],
        "projects": [{"title": "Lakehouse"}],
        "recommendations": [{"text": "Great engineer"}],
        "causes": ["Education"],
        "followersCount": 500,
    }
    profile.update(overrides)
    return profile


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def log_messages():
    """Every loguru message emitted during the test, debug level and up."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def profiles_store(backend: InMemoryBackend, clock: FakeClock) -> DocumentStore:
    return DocumentStore(backend, "profiles", clock=clock)


@pytest.fixture
def repository(profiles_store: DocumentStore) -> ProfileRepository:
    return ProfileRepository(profiles_store)


@pytest.fixture
def scraper() -> FakeScraper:
    return FakeScraper(payload=[full_profile()])


@pytest.fixture
def ai() -> FakeAI:
    return FakeAI()


@pytest.fixture
def analysis_service(
    repository: ProfileRepository, scraper: FakeScraper, ai: FakeAI, clock: FakeClock
) -> ProfileAnalysisService:
    return ProfileAnalysisService(repository, scraper, ai, clock=clock)


@pytest.fixture
def optimization_service(repository: ProfileRepository, ai: FakeAI, clock: FakeClock) -> SectionOptimizationService:
    return SectionOptimizationService(repository, ai, max_optimizations=3, clock=clock)


@pytest.fixture
def failing_scraper() -> FakeScraper:
    return FakeScraper(error=ScrapeError("Scraper returned HTTP 500"))


@pytest.fixture
def failing_ai() -> FakeAI:
    return FakeAI(error=AIError("Gemini request failed: quota"))
