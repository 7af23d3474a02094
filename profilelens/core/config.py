from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from profilelens.core.version import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    PORT: int = 8000
    APP_ENV: Literal["development", "production", "test"] = "production"
    APP_NAME: str = "ProfileLens"

    # Document store
    STORE_BACKEND: Literal["redis", "memory"] = "redis"
    REDIS_URL: str = "redis://redis:6379/0"
    # Maximum number of connections Redis client will open per process
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_KEY_PREFIX: str = "profilelens:"
    PROFILES_COLLECTION: str = "profiles"
    OPTIMIZATIONS_SUBCOLLECTION: str = "optimizations"
    # Canonical key -> user id pointers, one document per key
    PROFILE_KEYS_COLLECTION: str = "profileKeys"
    # Largest number of documents a single save_batch call may create
    STORE_BATCH_LIMIT: int = 500
    STORE_TRANSACTION_ATTEMPTS: int = 5

    # Cache policy
    CACHE_FRESHNESS_HOURS: int = 24
    PROFILE_HOST: str = "linkedin.com"

    # Scraper
    SCRAPER_URL: str | None = None
    SCRAPER_TOKEN: str | None = None
    SCRAPER_TIMEOUT_SECONDS: float = 60.0
    SCRAPER_MAX_RETRIES: int = 2

    # AI
    DEFAULT_GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_API_KEY: str | None = None
    DEFAULT_LANGUAGE: str = "en"
    MAX_OPTIMIZATIONS_PER_PROFILE: int = 5


settings = Settings()

APP_VERSION = __version__
