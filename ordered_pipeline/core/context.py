from dataclasses import dataclass, field
from typing import Any

from starlette.datastructures import Headers

CONTEXT_STATE_KEY = "pipeline_context"


@dataclass
class RequestContext:
    """Request-scoped record threaded explicitly through every pipeline stage"""
    method: str
    original_path: str
    headers: Headers = field(default_factory=Headers)
    body: Any = None
    _id: str | None = field(default=None, repr=False)
    _start_time: float | None = field(default=None, repr=False)

    @classmethod
    def from_scope(cls, scope: dict[str, Any]) -> "RequestContext":
        """Build the context for one ASGI http scope, before any stage runs"""
        path = scope["path"]
        query_string = scope.get("query_string", b"")
        if query_string:
            path = f"{path}?{query_string.decode('latin-1')}"
        return cls(
            method=scope["method"],
            original_path=path,
            headers=Headers(scope=scope),
        )

    @property
    def id(self) -> str | None:
        return self._id

    def assign_id(self, request_id: str) -> None:
        if self._id is not None:
            raise RuntimeError("Request id is already assigned")
        self._id = request_id

    @property
    def start_time(self) -> float | None:
        return self._start_time

    def mark_started(self, timestamp: float) -> None:
        if self._start_time is not None:
            raise RuntimeError("Request start time is already set")
        self._start_time = timestamp

    @property
    def origin(self) -> str | None:
        return self.headers.get("origin")


def attach_context(scope: dict[str, Any], context: RequestContext) -> None:
    scope.setdefault("state", {})[CONTEXT_STATE_KEY] = context


def context_from_scope(scope: dict[str, Any]) -> RequestContext | None:
    return scope.get("state", {}).get(CONTEXT_STATE_KEY)
