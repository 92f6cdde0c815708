"""What handlers return: structured data, or a view to render."""
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Generic, Protocol, TypeAlias, TypeVar

from attrs import frozen

from .status import BaseResponse, Headers, get_status_code

R = TypeVar("R")


@frozen
class Data(Generic[R]):
    """A structured value, to be encoded for the wire."""

    value: R
    status: int = 200
    headers: Headers = MappingProxyType({})


@frozen
class RenderView:
    """Ask the view renderer to render the named view with a context."""

    name: str
    context: Mapping[str, Any] = MappingProxyType({})
    status: int = 200
    headers: Headers = MappingProxyType({})


HandlerResult: TypeAlias = Data | RenderView


class ViewRenderer(Protocol):
    """The external template collaborator."""

    def render(self, name: str, context: Mapping[str, Any]) -> str | bytes:
        ...


def resolve_result(value: Any) -> HandlerResult:
    """Turn whatever a handler returned into the tagged variant."""
    if isinstance(value, (Data, RenderView)):
        return value
    if isinstance(value, BaseResponse):
        return Data(value.ret, get_status_code(value.__class__), value.headers)
    if value is None:
        return Data(None, 204)
    return Data(value)
