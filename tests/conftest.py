"""
pytest configuration and fixtures.
"""

import asyncio
from typing import Any

import pytest
from fastapi.testclient import TestClient

from main import create_app
from ordered_pipeline.core.context import RequestContext
from ordered_pipeline.middleware.exchange import Exchange
from ordered_pipeline.settings import Settings

ALLOWED_ORIGIN = "http://localhost:3000"


@pytest.fixture
def settings() -> Settings:
    """Settings with the production constants, independent of the environment."""
    return Settings(
        max_body_bytes=10 * 1024,
        allowed_origins=[ALLOWED_ORIGIN],
        origin_violation_status=500,
    )


@pytest.fixture
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def make_scope(
    method: str = "POST",
    path: str = "/demo",
    headers: dict[str, str] | None = None,
    query_string: bytes = b"",
) -> dict[str, Any]:
    """Build a minimal ASGI http scope."""
    return {
        "type": "http",
        "method": method,
        "path": path,
        "root_path": "",
        "query_string": query_string,
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ],
    }


def make_receive(*chunks: bytes, disconnect: bool = False):
    """ASGI receive callable yielding the given body chunks in order."""
    messages = [
        {"type": "http.request", "body": chunk, "more_body": index < len(chunks) - 1}
        for index, chunk in enumerate(chunks)
    ]
    if disconnect:
        messages.append({"type": "http.disconnect"})

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


class RecordingSend:
    """ASGI send callable that keeps every message it receives."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)


def make_context(**scope_kwargs) -> RequestContext:
    return RequestContext.from_scope(make_scope(**scope_kwargs))


def make_exchange(*chunks: bytes, disconnect: bool = False) -> tuple[Exchange, RecordingSend]:
    send = RecordingSend()
    return Exchange(make_receive(*chunks, disconnect=disconnect), send), send


def run(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)
