from fastapi import APIRouter

from ordered_pipeline.api.dependencies import ValidatedContextDep
from ordered_pipeline.middleware.schema_gate import RouteSchema
from ordered_pipeline.models.demo.responses import DemoResponse

DEMO_MESSAGE = "Middleware order works ✅"
DEMO_SCHEMA = RouteSchema.of({"name": "string"})

router = APIRouter(prefix="/demo", tags=["demo"])


@router.post("", response_model=DemoResponse)
async def demo(context: ValidatedContextDep(DEMO_SCHEMA)) -> DemoResponse:
    return DemoResponse(
        message=DEMO_MESSAGE,
        request_id=context.id,
        received_name=context.body["name"],
    )
