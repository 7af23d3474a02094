import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Any

from google import genai
from google.genai import types
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from profilelens.core.config import settings
from profilelens.core.exceptions import AIError
from profilelens.models.profile import ProfileRecord
from profilelens.models.user import AIAnalysisResult
from profilelens.services.prompts import analysis_prompt, optimization_prompt

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class AICollaborator(ABC):
    """Produces narrative analysis and rewritten sections for a profile."""

    @abstractmethod
    async def generate_analysis(self, profile: ProfileRecord, language: str = "en") -> AIAnalysisResult:
        """Raises AIError on failure."""

    @abstractmethod
    async def generate_optimized_section(self, content: str, section: str, language: str = "en") -> str:
        """Raises AIError on failure."""


def parse_json_response(text: str | None) -> Any:
    """Decode a model reply that should be JSON, tolerating markdown code fences."""
    if not text or not text.strip():
        raise AIError("AI returned an empty response")
    cleaned = _FENCE_PATTERN.sub("", text.strip()).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AIError(f"AI returned invalid JSON: {e.msg}") from e


class GeminiService(AICollaborator):
    def __init__(self, model: str = settings.DEFAULT_GEMINI_MODEL, api_key: str | None = None):
        self.model = model
        self.client = None
        if api_key := api_key or settings.GEMINI_API_KEY:
            try:
                self.client = genai.Client(api_key=api_key)
            except Exception as e:
                logger.warning(f"Failed to initialize Gemini client: {e}")
        else:
            logger.warning("GEMINI_API_KEY not set. AI analysis will fail until configured.")

    def generate_content(self, prompt: str) -> str:
        if not self.client:
            raise AIError("Gemini client not initialized")
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )
        except Exception as e:
            logger.exception(f"Error generating content with Gemini: {e}")
            raise AIError(f"Gemini request failed: {e}") from e
        return (response.text or "").strip()

    async def generate_content_async(self, prompt: str) -> str:
        """Async wrapper to avoid blocking the event loop during network calls."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.generate_content(prompt))

    async def generate_analysis(self, profile: ProfileRecord, language: str = "en") -> AIAnalysisResult:
        prompt = analysis_prompt(profile.model_dump(mode="json", exclude_defaults=True), language)
        data = parse_json_response(await self.generate_content_async(prompt))
        if not isinstance(data, dict):
            raise AIError("AI analysis is not a JSON object")
        try:
            return AIAnalysisResult.model_validate(data)
        except PydanticValidationError as e:
            raise AIError(f"AI analysis has an unexpected shape: {e.error_count()} error(s)") from e

    async def generate_optimized_section(self, content: str, section: str, language: str = "en") -> str:
        data = parse_json_response(await self.generate_content_async(optimization_prompt(content, section, language)))
        optimized = data.get("optimizedContent") if isinstance(data, dict) else data
        if not isinstance(optimized, str) or not optimized.strip():
            raise AIError("AI returned no optimized content")
        return optimized.strip()


gemini_service = GeminiService()
