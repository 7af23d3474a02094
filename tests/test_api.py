"""
Tests for the HTTP surface, using FastAPI's TestClient with in-memory services.
"""

import pytest
from fastapi.testclient import TestClient

from profilelens.api.dependencies import get_analysis_service, get_optimization_service
from profilelens.core.app import app
from profilelens.services.analysis import ProfileAnalysisService
from profilelens.services.optimization import SectionOptimizationService
from tests.conftest import PROFILE_URL, FakeAI, FakeScraper, full_profile


@pytest.fixture
def services(repository, clock):
    scraper = FakeScraper(payload=[full_profile()])
    ai = FakeAI()
    analysis = ProfileAnalysisService(repository, scraper, ai, clock=clock)
    optimization = SectionOptimizationService(repository, ai, clock=clock)
    app.dependency_overrides[get_analysis_service] = lambda: analysis
    app.dependency_overrides[get_optimization_service] = lambda: optimization
    yield analysis, optimization
    app.dependency_overrides.clear()


@pytest.fixture
def client(services) -> TestClient:
    return TestClient(app)


class TestHealth:
    """Test cases for the health endpoint."""

    def test_health(self, client):
        """Test the readiness probe."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestAnalyzeEndpoint:
    """Test cases for POST /profiles/analyze."""

    def test_analyze_then_cache_hit(self, client, services):
        """Test a first call scrapes and a second call is served from cache."""
        first = client.post("/profiles/analyze", json={"url": PROFILE_URL})
        second = client.post("/profiles/analyze", json={"url": PROFILE_URL, "language": "en"})

        assert first.status_code == 200
        assert first.json()["cached"] is False
        assert first.json()["scoreReport"]["grade"] == "A+"
        assert second.json()["cached"] is True
        assert len(services[0].scraper.calls) == 1

    def test_force_refresh_flag(self, client, services):
        """Test forceRefresh bypasses the cache."""
        client.post("/profiles/analyze", json={"url": PROFILE_URL})

        response = client.post("/profiles/analyze", json={"url": PROFILE_URL, "forceRefresh": True})

        assert response.json()["cached"] is False
        assert len(services[0].scraper.calls) == 2

    def test_invalid_url_is_400(self, client):
        """Test validation failures map to 400."""
        response = client.post("/profiles/analyze", json={"url": "   "})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["errorType"] == "ValidationError"

    def test_scrape_failure_is_502(self, client, services):
        """Test upstream scraper failures map to 502."""
        services[0].scraper.payload = []

        response = client.post("/profiles/analyze", json={"url": PROFILE_URL})

        assert response.status_code == 502


class TestProfileEndpoints:
    """Test cases for scoring, lookups and listing."""

    def test_score(self, client):
        """Test scoring a raw payload."""
        response = client.post("/profiles/score", json={"profile": {"headline": "Senior Engineer"}})

        assert response.status_code == 200
        assert response.json()["data"]["sectionScores"][2]["section"] == "headline"

    def test_get_profile(self, client):
        """Test fetching a stored user object and a missing one."""
        user_id = client.post("/profiles/analyze", json={"url": PROFILE_URL}).json()["userId"]

        found = client.get(f"/profiles/{user_id}")
        missing = client.get("/profiles/user_missing")

        assert found.status_code == 200
        assert found.json()["data"]["canonicalKey"] == "linkedin.com/in/janedoe"
        assert missing.status_code == 404

    def test_list_profiles(self, client):
        """Test listing with pagination parameters."""
        for slug in ("ann", "bob", "cid"):
            client.post("/profiles/analyze", json={"url": f"https://linkedin.com/in/{slug}"})

        first = client.get("/profiles", params={"limit": 2}).json()
        second = client.get("/profiles", params={"limit": 2, "cursor": first["cursor"]}).json()

        assert len(first["data"]) == 2
        assert first["hasMore"] is True
        assert len(second["data"]) == 1
        assert second["hasMore"] is False

    def test_unknown_cursor_is_400(self, client):
        """Test an unknown cursor is a client error."""
        assert client.get("/profiles", params={"cursor": "nope"}).status_code == 400


class TestOptimizationEndpoints:
    """Test cases for the optimization endpoints."""

    def test_optimize_and_history(self, client):
        """Test creating an optimization and reading it back."""
        user_id = client.post("/profiles/analyze", json={"url": PROFILE_URL}).json()["userId"]

        created = client.post(
            f"/profiles/{user_id}/optimizations", json={"section": "headline", "content": "Data Engineer"}
        )
        history = client.get(f"/profiles/{user_id}/optimizations", params={"section": "headline"})
        stats = client.get(f"/profiles/{user_id}/stats")

        assert created.status_code == 200
        assert created.json()["data"]["optimizedContent"] == "Optimized headline: Data Engineer"
        assert len(history.json()["data"]) == 1
        assert stats.json()["data"]["sectionsCount"] == {"headline": 1}

    def test_optimize_unknown_user_is_404(self, client):
        """Test optimizing for a missing user is a 404."""
        response = client.post("/profiles/user_missing/optimizations", json={"section": "headline", "content": "x"})

        assert response.status_code == 404
