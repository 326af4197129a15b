from http import HTTPStatus

DEFAULT_STATUS = 500
DEFAULT_TITLE = "Internal Server Error"
DEFAULT_DETAIL = "Unknown error"


class PipelineError(Exception):
    """
    Failure signalled by any pipeline stage or handler.

    Carries everything the error normalizer needs to render a problem document.
    Attributes are read-only once the error is constructed.
    """
    default_status: int = DEFAULT_STATUS
    default_title: str = DEFAULT_TITLE

    def __init__(
        self,
        detail: str | None = None,
        *,
        status_code: int | None = None,
        title: str | None = None,
    ) -> None:
        super().__init__(detail or DEFAULT_DETAIL)
        self._status_code = status_code or self.default_status
        self._title = title or self.default_title
        self._detail = detail or DEFAULT_DETAIL

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def title(self) -> str:
        return self._title

    @property
    def detail(self) -> str:
        return self._detail

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self._status_code}, title={self._title!r}, detail={self._detail!r})"


class IngressViolation(PipelineError):
    """Oversized or malformed request payload"""
    default_status = 400
    default_title = "Bad Request"


class OriginViolation(PipelineError):
    """Cross-origin request from an origin outside the allow-list"""
    default_status = 500
    default_title = DEFAULT_TITLE


class SchemaViolation(PipelineError):
    """Declared route field has the wrong runtime type"""
    default_status = 400
    default_title = "Invalid Request"


class HandlerFailure(PipelineError):
    """Any other exception raised while producing a response"""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "HandlerFailure":
        status_code = _declared_status(exc)
        title = DEFAULT_TITLE
        if status_code is not None and status_code != DEFAULT_STATUS:
            try:
                title = HTTPStatus(status_code).phrase
            except ValueError:
                pass  # Non-standard status, keep the generic title
        message = getattr(exc, "detail", None)
        if not isinstance(message, str):
            message = str(exc)
        return cls(message or None, status_code=status_code, title=title)


class ClientDisconnected(Exception):
    """The client went away before the request body was read"""
    pass


def _declared_status(exc: BaseException) -> int | None:
    for attribute in ("status_code", "status"):
        value = getattr(exc, attribute, None)
        if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
            return value
    return None


def to_pipeline_error(exc: BaseException) -> PipelineError:
    """Coerce any exception into the error taxonomy understood by the normalizer"""
    if isinstance(exc, PipelineError):
        return exc
    return HandlerFailure.from_exception(exc)
