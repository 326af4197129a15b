import logging
import time
from typing import Sequence

from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from ordered_pipeline.core.context import RequestContext, attach_context
from ordered_pipeline.core.errors import ClientDisconnected
from ordered_pipeline.middleware.base import Stage
from ordered_pipeline.middleware.correlation import CorrelationStage
from ordered_pipeline.middleware.error_normalizer import ErrorNormalizer
from ordered_pipeline.middleware.exchange import Exchange
from ordered_pipeline.middleware.ingress import IngressGuardStage
from ordered_pipeline.middleware.origin import OriginPolicyStage
from ordered_pipeline.middleware.timing import TimingStage
from ordered_pipeline.settings import Settings

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("ordered_pipeline.access")


def build_stages(settings: Settings) -> list[Stage]:
    """Global stages that run after correlation, in execution order"""
    return [
        TimingStage(settings.response_time_header),
        IngressGuardStage(settings.max_body_bytes),
        OriginPolicyStage(settings.allowed_origins, settings.origin_violation_status),
    ]


class PipelineMiddleware:
    """
    ASGI chain runner.

    For every HTTP request it creates one RequestContext, runs the correlation
    stage and then each configured stage in order, and only then hands the
    request to the wrapped application. The first stage that raises stops the
    chain and the error normalizer answers instead.
    """

    def __init__(
        self,
        app: ASGIApp,
        stages: Sequence[Stage],
        normalizer: ErrorNormalizer,
        request_id_header: str,
    ) -> None:
        self.app = app
        self.correlation = CorrelationStage(request_id_header)
        self.stages = tuple(stages)
        self.normalizer = normalizer

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        context = RequestContext.from_scope(scope)
        exchange = Exchange(receive, send)
        attach_context(scope, context)
        started = time.perf_counter()

        try:
            await self.correlation(context, exchange)
            response = await self._run_stages(context, exchange)
            if response is not None:
                await response(scope, exchange.replay_receive, exchange.send)
            else:
                await self.app(scope, exchange.replay_receive, exchange.send)
        except ClientDisconnected:
            logger.info("Client disconnected before the request was handled (request_id=%s)", context.id)
        except Exception as e:
            await self._normalize(scope, context, exchange, e)
        finally:
            self._log_access(context, exchange, started)

    async def _run_stages(self, context: RequestContext, exchange: Exchange) -> Response | None:
        for stage in self.stages:
            response = await stage(context, exchange)
            if response is not None:
                logger.debug("%s answered request %s", stage.name, context.id)
                return response
        return None

    async def _normalize(
        self,
        scope: Scope,
        context: RequestContext,
        exchange: Exchange,
        exc: Exception,
    ) -> None:
        if exchange.response_started or exchange.disconnected:
            logger.error(
                "Failure after the response was started for request %s: %s",
                context.id,
                exc,
                exc_info=exc,
            )
            return

        response = self.normalizer.normalize(context, exc)
        await response(scope, exchange.replay_receive, exchange.send)

    def _log_access(self, context: RequestContext, exchange: Exchange, started: float) -> None:
        access_logger.info(
            "%s %s -> %s in %.3f ms (request_id=%s)",
            context.method,
            context.original_path,
            exchange.status_code if exchange.status_code is not None else "-",
            (time.perf_counter() - started) * 1000,
            context.id,
        )
