from typing import Annotated

from fastapi import Depends, Request

from ordered_pipeline.core.context import RequestContext, context_from_scope
from ordered_pipeline.core.errors import HandlerFailure
from ordered_pipeline.middleware.schema_gate import RouteSchema, SchemaGate
from ordered_pipeline.settings import Settings, settings


def get_settings(request: Request) -> Settings:
    """Get the Settings the running app was built with"""
    return getattr(request.app.state, "settings", settings)


def get_request_context(request: Request) -> RequestContext:
    """Get the RequestContext the pipeline created for this request"""
    context = context_from_scope(request.scope)
    if context is None:
        raise HandlerFailure("Request context is unavailable")
    return context


def validated_context(schema: RouteSchema):
    """
    Gate a route behind its declared schema.
    The schema is bound once, when the route is declared.
    """
    return Depends(SchemaGate(schema))


# Type annotations for dependencies
SettingsDep = Annotated[Settings, Depends(get_settings)]
RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]


def ValidatedContextDep(schema: RouteSchema):
    return Annotated[RequestContext, validated_context(schema)]
