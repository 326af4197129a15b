from datetime import datetime, timezone

from fastapi import APIRouter, Request

from ordered_pipeline.api.dependencies import SettingsDep
from ordered_pipeline.models.health.responses import HealthResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health_check(request: Request, settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc),
        stages=getattr(request.app.state, "pipeline_stages", []),
    )
