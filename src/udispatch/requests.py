from collections.abc import Callable, Collection, Mapping
from enum import Enum
from inspect import Parameter, Signature, signature
from types import MappingProxyType
from typing import Annotated, Any, TypeAlias, TypeVar, get_args

from attrs import Factory, field, frozen

from .errors import InvalidSignatureError
from .status import BaseResponse
from .types import Handler, Method, RouteName

T = TypeVar("T")


def _readonly(m: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(m))


def _readonly_lower(m: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType({k.lower(): v for k, v in m.items()})


@frozen
class Request:
    """An incoming request, as handed over by the transport."""

    method: str
    path: str
    query_params: Mapping[str, str] = field(default=Factory(dict), converter=_readonly)
    headers: Mapping[str, str] = field(
        default=Factory(dict), converter=_readonly_lower
    )
    raw_body: bytes = b""

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")


@frozen
class JsonBodyLoader:
    """Metadata for customized loading and structuring of JSON bodies.

    :param content_type: When set, non-empty bodies must arrive with this
        content type.
    :param error_handler: Turns a decoding failure into a response, instead of
        the default 400.
    """

    content_type: str | None = None
    error_handler: Callable[[Exception, bytes], BaseResponse] | None = None


@frozen
class HeaderSpec:
    """Metadata for loading headers."""

    name: str | Callable[[str], str] = lambda n: n.replace("_", "-")


@frozen
class QuerySpec:
    """Metadata for loading query parameters under a different key."""

    key: str


ReqBody = Annotated[T, JsonBodyLoader()]

#: A header dependency.
Header: TypeAlias = Annotated[T, HeaderSpec()]


class ParamSource(Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"
    REQUEST = "request"
    ROUTE_NAME = "route_name"
    METHOD = "method"


@frozen
class ParamSpec:
    """Where a handler parameter comes from, and what it should become."""

    name: str
    source: ParamSource
    type: Any = str
    key: str = field(default=Factory(lambda self: self.name, takes_self=True))
    required: bool = True
    default: Any = None
    loader: JsonBodyLoader | None = None


def _one_body_at_most(_, __, params: tuple[ParamSpec, ...]) -> None:
    bodies = [p.name for p in params if p.source is ParamSource.BODY]
    if len(bodies) > 1:
        raise InvalidSignatureError(
            f"At most one body parameter is allowed, got: {', '.join(bodies)}"
        )


@frozen
class HandlerSignature:
    params: tuple[ParamSpec, ...] = field(
        default=(), converter=tuple, validator=_one_body_at_most
    )

    @property
    def body_param(self) -> ParamSpec | None:
        for p in self.params:
            if p.source is ParamSource.BODY:
                return p
        return None

    def __iter__(self):
        return iter(self.params)

    def __len__(self) -> int:
        return len(self.params)


def path_var(name: str, type: Any = str) -> ParamSpec:
    return ParamSpec(name, ParamSource.PATH, type)


def query(
    name: str,
    type: Any = str,
    required: bool = True,
    default: Any = None,
    key: str | None = None,
) -> ParamSpec:
    return ParamSpec(
        name, ParamSource.QUERY, type, key or name, required=required, default=default
    )


def header(
    name: str,
    type: Any = str,
    required: bool = True,
    default: Any = None,
    key: str | None = None,
) -> ParamSpec:
    return ParamSpec(
        name,
        ParamSource.HEADER,
        type,
        (key or name.replace("_", "-")).lower(),
        required=required,
        default=default,
    )


def body(name: str, type: Any, loader: JsonBodyLoader = JsonBodyLoader()) -> ParamSpec:
    return ParamSpec(name, ParamSource.BODY, type, loader=loader)


def maybe_req_body_type(p: Parameter) -> tuple[type, JsonBodyLoader] | None:
    """Is this parameter a valid request body?"""
    t = p.annotation
    if getattr(t, "__metadata__", None) is not None:
        args = get_args(t)
        for arg in args[1:]:
            if isinstance(arg, JsonBodyLoader):
                return args[0], arg
    return None


def maybe_header_type(p: Parameter) -> tuple[type, HeaderSpec] | None:
    """Get the Annotated HeaderSpec, if present."""
    t = p.annotation
    if getattr(t, "__metadata__", None) is not None:
        args = get_args(t)
        for arg in args[1:]:
            if isinstance(arg, HeaderSpec):
                return args[0], arg
    return None


def maybe_query_type(p: Parameter) -> tuple[type, QuerySpec] | None:
    t = p.annotation
    if getattr(t, "__metadata__", None) is not None:
        args = get_args(t)
        for arg in args[1:]:
            if isinstance(arg, QuerySpec):
                return args[0], arg
    return None


def _param_from_parameter(p: Parameter, path_params: Collection[str]) -> ParamSpec:
    required = p.default is Signature.empty
    default = None if required else p.default
    if p.annotation is Request:
        return ParamSpec(p.name, ParamSource.REQUEST, Request)
    if p.annotation is RouteName:
        return ParamSpec(p.name, ParamSource.ROUTE_NAME, RouteName)
    if p.annotation is Method:
        return ParamSpec(p.name, ParamSource.METHOD, str)
    if (req_body := maybe_req_body_type(p)) is not None:
        return ParamSpec(p.name, ParamSource.BODY, req_body[0], loader=req_body[1])
    if (header_type := maybe_header_type(p)) is not None:
        type, spec = header_type
        name = spec.name if isinstance(spec.name, str) else spec.name(p.name)
        return ParamSpec(
            p.name, ParamSource.HEADER, type, name.lower(), required, default
        )
    if p.name in path_params:
        return ParamSpec(
            p.name,
            ParamSource.PATH,
            str if p.annotation is Signature.empty else p.annotation,
        )
    if (query_type := maybe_query_type(p)) is not None:
        return ParamSpec(
            p.name, ParamSource.QUERY, query_type[0], query_type[1].key, required, default
        )
    return ParamSpec(
        p.name,
        ParamSource.QUERY,
        str if p.annotation is Signature.empty else p.annotation,
        required=required,
        default=default,
    )


def derive_signature(handler: Handler, path_params: Collection[str]) -> HandlerSignature:
    """Build the signature from the handler's annotations, once, at registration."""
    params = []
    for p in signature(handler, eval_str=True).parameters.values():
        if p.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            raise InvalidSignatureError(
                f"{getattr(handler, '__name__', handler)}: *args and **kwargs are not supported"
            )
        params.append(_param_from_parameter(p, path_params))
    return HandlerSignature(params)
