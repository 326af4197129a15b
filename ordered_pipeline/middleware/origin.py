from typing import Iterable

from starlette.responses import Response

from ordered_pipeline.core.context import RequestContext
from ordered_pipeline.core.errors import OriginViolation
from ordered_pipeline.middleware.base import Stage
from ordered_pipeline.middleware.exchange import Exchange

PREFLIGHT_ALLOW_METHODS = "GET,HEAD,PUT,PATCH,POST,DELETE"


class OriginPolicyStage(Stage):
    """
    Enforces the cross-origin allow-list.

    Requests without an Origin header are let through untouched. Allowed
    origins are echoed back; preflight requests are answered here with 204.
    """

    def __init__(self, allowed_origins: Iterable[str], violation_status: int = 500) -> None:
        self.allowed_origins = frozenset(allowed_origins)
        self.violation_status = violation_status

    def is_allowed(self, origin: str | None) -> bool:
        return origin is None or origin in self.allowed_origins

    async def __call__(self, context: RequestContext, exchange: Exchange) -> Response | None:
        origin = context.origin
        if not self.is_allowed(origin):
            raise OriginViolation("CORS blocked", status_code=self.violation_status)

        vary = ["Origin"]
        if origin is not None:
            exchange.set_header("Access-Control-Allow-Origin", origin)

        if context.method == "OPTIONS" and "access-control-request-method" in context.headers:
            exchange.set_header("Access-Control-Allow-Methods", PREFLIGHT_ALLOW_METHODS)
            requested_headers = context.headers.get("access-control-request-headers")
            if requested_headers:
                exchange.set_header("Access-Control-Allow-Headers", requested_headers)
                vary.append("Access-Control-Request-Headers")
            exchange.set_header("Vary", ", ".join(vary))
            return Response(status_code=204)

        exchange.set_header("Vary", ", ".join(vary))
        return None
