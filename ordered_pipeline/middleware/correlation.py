from uuid import uuid4

from ordered_pipeline.core.context import RequestContext
from ordered_pipeline.middleware.base import Stage
from ordered_pipeline.middleware.exchange import Exchange


def generate_request_id() -> str:
    return str(uuid4())


class CorrelationStage(Stage):
    """Assigns a random request id and echoes it on the response"""

    def __init__(self, header_name: str) -> None:
        self.header_name = header_name

    async def __call__(self, context: RequestContext, exchange: Exchange) -> None:
        context.assign_id(generate_request_id())
        exchange.set_header(self.header_name, context.id)
