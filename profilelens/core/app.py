from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from profilelens.api.main import api_router
from profilelens.services.analysis import analysis_service

from .config import settings
from .version import __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events (startup/shutdown).
    """
    logger.info(f"Starting {settings.APP_NAME} {__version__} ({settings.APP_ENV}, store={settings.STORE_BACKEND})")
    yield
    try:
        await analysis_service.close()
        logger.info("Scraper HTTP client closed")
    except Exception as exc:
        logger.warning(f"Failed to close scraper HTTP client: {exc}")
    await analysis_service.repository.store.backend.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Scores and analyses professional profiles with cached AI insights",
    version=__version__,
    lifespan=lifespan,
    docs_url=None if settings.APP_ENV != "development" else "/docs",
    redoc_url=None if settings.APP_ENV != "development" else "/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)
