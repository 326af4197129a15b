from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from fastapi import Request

from ordered_pipeline.core.context import RequestContext, context_from_scope
from ordered_pipeline.core.errors import HandlerFailure, SchemaViolation


class TypeTag(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"


def matches_type(value: Any, tag: TypeTag) -> bool:
    if tag is TypeTag.STRING:
        return isinstance(value, str)
    if tag is TypeTag.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if tag is TypeTag.BOOLEAN:
        return isinstance(value, bool)
    return isinstance(value, dict)


@dataclass(frozen=True)
class RouteSchema:
    """Field name to expected type tag, fixed when the route is registered"""
    fields: Mapping[str, TypeTag] = field(default_factory=dict)

    @classmethod
    def of(cls, fields: Mapping[str, str]) -> "RouteSchema":
        """
        Build a schema from plain type tag strings.

        Raises:
            ValueError: If a type tag is not one of string, number, boolean, object
        """
        return cls(MappingProxyType({name: TypeTag(tag) for name, tag in fields.items()}))

    def first_violation(self, body: Any) -> SchemaViolation | None:
        payload = body if isinstance(body, dict) else {}
        for name, tag in self.fields.items():
            if not matches_type(payload.get(name), tag):
                return SchemaViolation(f"Expected '{name}' to be of type {tag.value}")
        return None


class SchemaGate:
    """
    Per-route validation stage, used as a FastAPI dependency.

    Returns the request context so handlers can depend on the gate directly.
    """

    def __init__(self, schema: RouteSchema) -> None:
        self.schema = schema

    async def __call__(self, request: Request) -> RequestContext:
        context = context_from_scope(request.scope)
        if context is None:
            raise HandlerFailure("Request context is unavailable")

        violation = self.schema.first_violation(context.body)
        if violation is not None:
            raise violation
        return context
