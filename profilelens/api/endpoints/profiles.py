from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from profilelens.api.dependencies import get_analysis_service, get_optimization_service
from profilelens.core.exceptions import NotFoundError, StoreError
from profilelens.models.analysis import AnalysisOutcome
from profilelens.services.analysis import ProfileAnalysisService
from profilelens.services.optimization import SectionOptimizationService

router = APIRouter(prefix="/profiles", tags=["profiles"])

# error_type -> HTTP status for unsuccessful service results
ERROR_STATUS = {
    "ValidationError": 400,
    "NotFoundError": 404,
    "QuotaExceededError": 429,
    "ScrapeError": 502,
    "NoProfileDataError": 502,
    "AIError": 502,
    "StoreError": 503,
}


def status_for(error_type: str | None) -> int:
    return ERROR_STATUS.get(error_type or "", 500)


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str = Field(description="Profile URL or bare profile slug")
    language: str | None = Field(default=None, description="Language of the AI analysis (en or ar)")
    force_refresh: bool = Field(default=False, description="Ignore the cached analysis and scrape again")


class ScoreRequest(BaseModel):
    profile: dict[str, Any] | list[Any]


class OptimizeRequest(BaseModel):
    section: str
    content: str
    language: str | None = None


def _result_response(result: BaseModel) -> JSONResponse:
    status = 200 if result.success else status_for(result.error_type)
    return JSONResponse(status_code=status, content=result.model_dump(by_alias=True, mode="json"))


@router.post("/analyze")
async def analyze_profile(
    payload: AnalyzeRequest, service: ProfileAnalysisService = Depends(get_analysis_service)
) -> JSONResponse:
    outcome: AnalysisOutcome = await service.analyze(
        payload.url, language=payload.language, force_refresh=payload.force_refresh
    )
    return _result_response(outcome)


@router.post("/score")
async def score_profile(
    payload: ScoreRequest, service: ProfileAnalysisService = Depends(get_analysis_service)
) -> JSONResponse:
    return _result_response(service.score(payload.profile))


@router.get("")
async def list_profiles(
    limit: int = Query(default=20, ge=1, le=100),
    cursor: str | None = None,
    service: ProfileAnalysisService = Depends(get_analysis_service),
) -> dict[str, Any]:
    try:
        page = await service.repository.list_users(limit=limit, cursor=cursor)
    except NotFoundError as e:
        raise HTTPException(status_code=400, detail=f"Unknown cursor: {cursor}") from e
    except StoreError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    return {"data": page.data, "hasMore": page.has_more, "cursor": page.cursor}


@router.get("/{user_id}")
async def get_profile(user_id: str, service: ProfileAnalysisService = Depends(get_analysis_service)) -> JSONResponse:
    return _result_response(await service.get_user_object(user_id))


@router.post("/{user_id}/optimizations")
async def optimize_section(
    user_id: str,
    payload: OptimizeRequest,
    service: SectionOptimizationService = Depends(get_optimization_service),
) -> JSONResponse:
    result = await service.optimize_section(user_id, payload.section, payload.content, language=payload.language)
    return _result_response(result)


@router.get("/{user_id}/optimizations")
async def optimization_history(
    user_id: str,
    section: str | None = None,
    service: SectionOptimizationService = Depends(get_optimization_service),
) -> JSONResponse:
    return _result_response(await service.get_optimization_history(user_id, section=section))


@router.get("/{user_id}/stats")
async def user_stats(
    user_id: str, service: SectionOptimizationService = Depends(get_optimization_service)
) -> JSONResponse:
    return _result_response(await service.get_user_stats(user_id))
