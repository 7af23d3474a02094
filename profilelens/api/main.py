from fastapi import APIRouter

from profilelens.api.endpoints.health import router as health_router
from profilelens.api.endpoints.profiles import router as profiles_router

api_router = APIRouter()


@api_router.get("/")
async def root():
    return {"message": "ProfileLens API is running"}


api_router.include_router(health_router)
api_router.include_router(profiles_router)
