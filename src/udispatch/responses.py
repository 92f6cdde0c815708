from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType

from attrs import Factory, field, frozen
from orjson import dumps

from .codec import BodyCodec
from .errors import EncodeError, ErrorKind, ViewRenderingError
from .returns import HandlerResult, RenderView, ViewRenderer
from .shorthands import (
    BytesShorthand,
    JsonShorthand,
    NoneShorthand,
    ResponseShorthand,
    StrShorthand,
)
from .status import Headers

default_shorthands: Sequence[type[ResponseShorthand]] = (
    NoneShorthand,
    StrShorthand,
    BytesShorthand,
)


def _readonly(m: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(m))


@frozen
class Response:
    """The outgoing response, handed back to the transport."""

    status_code: int
    body: bytes = b""
    headers: Headers = field(default=Factory(dict), converter=_readonly)

    def without_body(self) -> "Response":
        return Response(self.status_code, b"", self.headers)


def make_response(
    result: HandlerResult,
    codec: BodyCodec,
    shorthands: Iterable[type[ResponseShorthand]] = default_shorthands,
    view_renderer: ViewRenderer | None = None,
) -> Response:
    """Encode a handler result.

    :raises EncodeError: When the codec or a shorthand cannot encode the value.
    :raises ViewRenderingError: For views, when no renderer is configured or
        the renderer fails.
    """
    if isinstance(result, RenderView):
        if view_renderer is None:
            raise ViewRenderingError(
                f"cannot render view {result.name!r}: no view renderer configured"
            )
        try:
            rendered = view_renderer.render(result.name, result.context)
        except Exception as exc:
            raise ViewRenderingError(
                f"cannot render view {result.name!r}: {exc!r}"
            ) from exc
        if isinstance(rendered, str):
            rendered = rendered.encode()
        return Response(
            result.status, rendered, {"content-type": "text/html"} | dict(result.headers)
        )

    payload, content_type = b"", None
    for shorthand in (*shorthands, JsonShorthand):
        if shorthand.is_union_member(result.value):
            try:
                payload, content_type = shorthand.make_body(result.value, codec)
            except EncodeError:
                raise
            except Exception as exc:
                raise EncodeError(
                    f"{shorthand.__name__} cannot encode {type(result.value).__name__}"
                ) from exc
            break
    headers = dict(result.headers)
    if content_type is not None:
        headers = {"content-type": content_type} | headers
    return Response(result.status, payload, headers)


def error_response(
    kind: ErrorKind,
    message: str,
    status: int,
    details: Sequence[str] = (),
    headers: Headers = MappingProxyType({}),
) -> Response:
    """A machine-readable error body."""
    payload: dict = {"kind": kind.value, "message": message}
    if details:
        payload["details"] = list(details)
    return Response(
        status, dumps(payload), {"content-type": "application/json"} | dict(headers)
    )
