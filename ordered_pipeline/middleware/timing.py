import time

from ordered_pipeline.core.context import RequestContext
from ordered_pipeline.middleware.base import Stage
from ordered_pipeline.middleware.exchange import Exchange


def format_duration_ms(start: float, end: float) -> str:
    return f"{(end - start) * 1000:.3f}"


class TimingStage(Stage):
    """Writes the end-to-end handling latency to a response header"""

    def __init__(self, header_name: str, clock=time.perf_counter) -> None:
        self.header_name = header_name
        self.clock = clock

    async def __call__(self, context: RequestContext, exchange: Exchange) -> None:
        context.mark_started(self.clock())

        def write_duration() -> None:
            exchange.set_header(
                self.header_name,
                format_duration_ms(context.start_time, self.clock()),
            )

        exchange.on_complete(write_duration)
