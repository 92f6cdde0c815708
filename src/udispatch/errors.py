"""The exception hierarchy and the error kinds reported to clients."""
from collections.abc import Sequence
from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    """The machine-readable kind of a failed dispatch."""

    NOT_FOUND = "NotFound"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"
    BAD_REQUEST = "BadRequest"
    HANDLER_ERROR = "HandlerError"
    TIMEOUT = "Timeout"
    ENCODE_ERROR = "EncodeError"
    INTERNAL_INCONSISTENCY = "InternalInconsistency"


class DispatchError(Exception):
    """Base class for every error raised by udispatch."""


# Registration-time errors.


class RouteError(DispatchError):
    pass


class InvalidPatternError(RouteError):
    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid path pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class DuplicateRouteError(RouteError):
    def __init__(self, method: str, pattern: str, existing: str) -> None:
        msg = f"{method} {pattern} is already registered"
        if existing != pattern:
            msg = f"{msg} (as {existing})"
        super().__init__(msg)
        self.method = method
        self.pattern = pattern
        self.existing = existing


class InvalidSignatureError(RouteError):
    pass


# Codec errors.


class CodecError(DispatchError):
    pass


class DecodeError(CodecError):
    def __init__(self, message: str, details: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.details = tuple(details)


class MissingFieldError(DecodeError):
    """Required fields are absent from the payload."""

    def __init__(self, fields: Sequence[str], details: Sequence[str] = ()) -> None:
        super().__init__(f"missing required field(s): {', '.join(fields)}", details)
        self.fields = tuple(fields)


class EncodeError(CodecError):
    pass


# Binding errors. These are client errors unless noted otherwise.


class BindingError(DispatchError):
    status: ClassVar[int] = 400
    details: tuple[str, ...] = ()


class MissingQueryParamError(BindingError):
    def __init__(self, key: str) -> None:
        super().__init__(f"missing required query parameter {key!r}")
        self.key = key


class MissingHeaderError(BindingError):
    def __init__(self, name: str) -> None:
        super().__init__(f"missing required header {name!r}")
        self.name = name


class MalformedBodyError(BindingError):
    def __init__(self, message: str, details: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.details = tuple(details)


class UnsupportedMediaTypeError(BindingError):
    status: ClassVar[int] = 415

    def __init__(self, expected: str, actual: str | None) -> None:
        super().__init__(f"invalid content type (expected {expected})")
        self.expected = expected
        self.actual = actual


class TypeCoercionError(BindingError):
    def __init__(self, raw: Any, target: Any, param: str) -> None:
        target_name = getattr(target, "__name__", repr(target))
        super().__init__(f"cannot convert {raw!r} to {target_name} for {param!r}")
        self.raw = raw
        self.target = target
        self.param = param


class MissingPathVariableError(DispatchError):
    """A path-bound parameter has no value in the match.

    The route table and the path matcher disagree; this is a bug, not a client
    error.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"path variable {name!r} is missing from the match")
        self.name = name


class ViewRenderingError(DispatchError):
    pass


class HandlerTimeoutError(DispatchError):
    pass
