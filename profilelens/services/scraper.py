from abc import ABC, abstractmethod
from typing import Any

import httpx
from loguru import logger

from profilelens.core.base_client import BaseClient
from profilelens.core.config import settings
from profilelens.core.exceptions import ScrapeError
from profilelens.core.security import redact_identifier


class ScraperCollaborator(ABC):
    """Fetches the raw profile payload for a canonical profile URL."""

    @abstractmethod
    async def fetch_profile(self, url: str) -> Any:
        """Return the raw scraper response. Raises ScrapeError on failure."""

    async def close(self) -> None:
        return None


class ApifyScraperClient(BaseClient, ScraperCollaborator):
    """
    Profile scraper backed by an Apify actor run-sync endpoint.

    The actor is called with a single URL and returns a list of dataset items,
    normally one profile.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        self.endpoint = endpoint or settings.SCRAPER_URL
        token = token or settings.SCRAPER_TOKEN
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("SCRAPER_TOKEN not set. Profile scraping requests will be unauthenticated.")
        super().__init__(
            timeout=timeout or settings.SCRAPER_TIMEOUT_SECONDS,
            max_retries=max_retries or settings.SCRAPER_MAX_RETRIES,
            headers=headers,
        )

    @staticmethod
    def build_request_body(url: str) -> dict[str, Any]:
        return {
            "urls": [{"url": url, "method": "GET"}],
            "findContacts": False,
            "scrapeCompany": False,
        }

    async def fetch_profile(self, url: str) -> Any:
        if not self.endpoint:
            raise ScrapeError("SCRAPER_URL is not configured")

        logger.info(f"Fetching profile {redact_identifier(url)} from scraper")
        try:
            payload = await self.post(self.endpoint, json=self.build_request_body(url))
        except httpx.HTTPStatusError as e:
            raise ScrapeError(f"Scraper returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ScrapeError(f"Scraper request failed: {e}") from e
        except ValueError as e:
            raise ScrapeError("Scraper returned a non-JSON response") from e

        logger.debug(f"Scraper returned {type(payload).__name__} payload for {redact_identifier(url)}")
        return payload
