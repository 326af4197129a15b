from abc import ABC, abstractmethod

from starlette.responses import Response

from ordered_pipeline.core.context import RequestContext
from ordered_pipeline.middleware.exchange import Exchange


class Stage(ABC):
    """
    One step of the request pipeline.

    A stage either returns None to let the chain continue, returns a Response
    to answer the request itself, or raises PipelineError to hand the request
    over to the error normalizer.
    """

    @abstractmethod
    async def __call__(self, context: RequestContext, exchange: Exchange) -> Response | None:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__
