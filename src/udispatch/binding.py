"""Resolving handler arguments from a matched request."""
from logging import getLogger
from typing import Any

from attrs import Factory, define
from cattrs import Converter

from .codec import BodyCodec
from .errors import (
    DecodeError,
    MalformedBodyError,
    MissingHeaderError,
    MissingPathVariableError,
    MissingQueryParamError,
    TypeCoercionError,
    UnsupportedMediaTypeError,
)
from .requests import HandlerSignature, ParamSource, ParamSpec, Request
from .routing import MatchResult
from .status import ResponseException

log = getLogger(__name__)

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def _structure_bool(val: Any, _: type) -> bool:
    if isinstance(val, bool):
        return val
    lowered = str(val).strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {val!r}")


def make_string_converter() -> Converter:
    """A converter for values that arrive as strings (paths, queries, headers, env)."""
    res = Converter()
    res.register_structure_hook(bool, _structure_bool)
    return res


@define
class ParameterBinder:
    codec: BodyCodec = Factory(BodyCodec)
    converter: Converter = Factory(make_string_converter)

    def bind(
        self, signature: HandlerSignature, request: Request, match: MatchResult
    ) -> dict[str, Any]:
        """Assemble the keyword arguments for a handler, in declared order.

        :raises BindingError: On client errors.
        :raises MissingPathVariableError: When the match lacks a path variable.
        """
        return {p.name: self._bind_one(p, request, match) for p in signature}

    def _bind_one(self, p: ParamSpec, request: Request, match: MatchResult) -> Any:
        match p.source:
            case ParamSource.PATH:
                try:
                    raw = match.path_variables[p.key]
                except KeyError:
                    raise MissingPathVariableError(p.key) from None
                return self.coerce(raw, p)
            case ParamSource.QUERY:
                if p.key not in request.query_params:
                    if p.required:
                        raise MissingQueryParamError(p.key)
                    return p.default
                return self.coerce(request.query_params[p.key], p)
            case ParamSource.HEADER:
                if p.key not in request.headers:
                    if p.required:
                        raise MissingHeaderError(p.key)
                    return p.default
                return self.coerce(request.headers[p.key], p)
            case ParamSource.BODY:
                return self.decode_body(p, request)
            case ParamSource.REQUEST:
                return request
            case ParamSource.ROUTE_NAME:
                return match.route.name
            case ParamSource.METHOD:
                return request.method

    def coerce(self, raw: str, p: ParamSpec) -> Any:
        if p.type is str or p.type is Any:
            return raw
        try:
            return self.converter.structure(raw, p.type)
        except Exception as exc:
            raise TypeCoercionError(raw, p.type, p.name) from exc

    def decode_body(self, p: ParamSpec, request: Request) -> Any:
        loader = p.loader
        payload = request.raw_body
        if (
            loader is not None
            and loader.content_type is not None
            and payload
            and request.content_type != loader.content_type
        ):
            raise UnsupportedMediaTypeError(loader.content_type, request.content_type)
        try:
            return self.codec.decode(payload, p.type)
        except DecodeError as exc:
            if loader is not None and loader.error_handler is not None:
                try:
                    mapped = loader.error_handler(exc, payload)
                except Exception:
                    log.exception("Body error handler for %r failed", p.name)
                else:
                    raise ResponseException(mapped) from exc
            raise MalformedBodyError(exc.message, exc.details) from exc
