import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ordered_pipeline.core.context import RequestContext, context_from_scope
from ordered_pipeline.core.errors import HandlerFailure, PipelineError, to_pipeline_error
from ordered_pipeline.models.problem.responses import ProblemDetails
from ordered_pipeline.settings import Settings

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"
FALLBACK_RESPONSE_TIME = "0"


class ProblemResponse(JSONResponse):
    media_type = PROBLEM_MEDIA_TYPE


class ErrorNormalizer:
    """
    Terminal stage: turns any failure into a problem-details response.

    Always sets the request id header and a fallback response-time header.
    The timing stage overwrites the fallback when the response is finalized
    if it managed to start timing.
    """

    def __init__(self, request_id_header: str, response_time_header: str) -> None:
        self.request_id_header = request_id_header
        self.response_time_header = response_time_header

    @classmethod
    def from_settings(cls, settings: Settings) -> "ErrorNormalizer":
        return cls(settings.request_id_header, settings.response_time_header)

    def normalize(self, context: RequestContext, exc: BaseException) -> ProblemResponse:
        error = to_pipeline_error(exc)
        self._log(context, error, exc)

        problem = ProblemDetails(
            title=error.title,
            status=error.status_code,
            detail=error.detail,
            instance=context.original_path,
            request_id=context.id or "",
        )
        return ProblemResponse(
            content=problem.model_dump(by_alias=True),
            status_code=error.status_code,
            headers={
                self.request_id_header: context.id or "",
                self.response_time_header: FALLBACK_RESPONSE_TIME,
            },
        )

    def _log(self, context: RequestContext, error: PipelineError, exc: BaseException) -> None:
        if isinstance(error, HandlerFailure) and error.status_code >= 500:
            logger.error(
                "Unhandled failure for %s %s (request_id=%s)",
                context.method,
                context.original_path,
                context.id,
                exc_info=exc,
            )
        else:
            logger.warning(
                "%s for %s %s (request_id=%s): %s",
                type(error).__name__,
                context.method,
                context.original_path,
                context.id,
                error.detail,
            )


def _validation_failure(exc: RequestValidationError) -> HandlerFailure:
    errors = exc.errors()
    message = errors[0].get("msg", "Request validation failed") if errors else "Request validation failed"
    return HandlerFailure(message, status_code=422, title="Unprocessable Entity")


def register_exception_handlers(app: FastAPI, normalizer: ErrorNormalizer) -> None:
    """Route framework-level failures raised inside the app through the normalizer"""

    def _context_for(request: Request) -> RequestContext:
        context = context_from_scope(request.scope)
        if context is None:
            # Request did not pass through the pipeline middleware
            context = RequestContext.from_scope(request.scope)
        return context

    async def handle_pipeline_error(request: Request, exc: PipelineError) -> ProblemResponse:
        return normalizer.normalize(_context_for(request), exc)

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> ProblemResponse:
        response = normalizer.normalize(_context_for(request), exc)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    async def handle_validation_error(request: Request, exc: RequestValidationError) -> ProblemResponse:
        return normalizer.normalize(_context_for(request), _validation_failure(exc))

    app.add_exception_handler(PipelineError, handle_pipeline_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
