import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ordered_pipeline.api.routes.demo import router as demo_router
from ordered_pipeline.api.routes.health import router as health_router
from ordered_pipeline.core.supervisor import FatalErrorSupervisor
from ordered_pipeline.middleware.correlation import CorrelationStage
from ordered_pipeline.middleware.error_normalizer import ErrorNormalizer, register_exception_handlers
from ordered_pipeline.middleware.pipeline import PipelineMiddleware, build_stages
from ordered_pipeline.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    supervisor: FatalErrorSupervisor | None = None,
) -> FastAPI:
    settings = settings or default_settings
    supervisor = supervisor or FatalErrorSupervisor()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        supervisor.install()
        logger.info("Pipeline stages: %s", " -> ".join(app.state.pipeline_stages))
        try:
            yield
        finally:
            await supervisor.cancel_all()
            supervisor.uninstall()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Ordered middleware pipeline with uniform problem-details errors",
        lifespan=lifespan,
    )

    normalizer = ErrorNormalizer.from_settings(settings)
    stages = build_stages(settings)

    app.state.settings = settings
    app.state.supervisor = supervisor
    app.state.pipeline_stages = [CorrelationStage.__name__] + [stage.name for stage in stages] + ["SchemaGate", "Handler", "ErrorNormalizer"]

    register_exception_handlers(app, normalizer)
    app.add_middleware(
        PipelineMiddleware,
        stages=stages,
        normalizer=normalizer,
        request_id_header=settings.request_id_header,
    )

    app.include_router(health_router)
    app.include_router(demo_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )
