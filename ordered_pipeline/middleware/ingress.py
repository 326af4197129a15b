import json
from typing import Any

from ordered_pipeline.core.context import RequestContext
from ordered_pipeline.core.errors import ClientDisconnected, IngressViolation
from ordered_pipeline.middleware.base import Stage
from ordered_pipeline.middleware.exchange import Exchange


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON literal {name}")


def parse_strict_json(raw: bytes) -> dict[str, Any] | list[Any]:
    """
    Parse a JSON document, accepting only an object or array at top level.

    Raises:
        IngressViolation: If the payload is not valid JSON or is a bare scalar
    """
    try:
        payload = json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
    except ValueError as e:
        raise IngressViolation(f"Malformed JSON body: {e}") from e
    except RecursionError as e:
        raise IngressViolation("Malformed JSON body: nesting too deep") from e

    if not isinstance(payload, (dict, list)):
        raise IngressViolation(
            f"Malformed JSON body: top-level value must be an object or array, got {type(payload).__name__}"
        )
    return payload


def is_json_content_type(content_type: str | None) -> bool:
    if not content_type:
        return True
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


class IngressGuardStage(Stage):
    """Bounds the request body size while reading it, then parses it as strict JSON"""

    def __init__(self, max_body_bytes: int) -> None:
        self.max_body_bytes = max_body_bytes

    def _too_large(self) -> IngressViolation:
        return IngressViolation(f"Request body exceeds the limit of {self.max_body_bytes} bytes")

    async def read_body(self, context: RequestContext, exchange: Exchange) -> bytes:
        declared_length = context.headers.get("content-length")
        if declared_length and declared_length.isdigit() and int(declared_length) > self.max_body_bytes:
            raise self._too_large()

        chunks: list[bytes] = []
        received = 0
        while True:
            message = await exchange.receive()
            if message["type"] == "http.disconnect":
                raise ClientDisconnected()

            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.max_body_bytes:
                raise self._too_large()
            chunks.append(chunk)

            if not message.get("more_body", False):
                return b"".join(chunks)

    async def __call__(self, context: RequestContext, exchange: Exchange) -> None:
        raw = await self.read_body(context, exchange)
        exchange.buffer_body(raw)

        if not raw or not is_json_content_type(context.headers.get("content-type")):
            return

        context.body = parse_strict_json(raw)
