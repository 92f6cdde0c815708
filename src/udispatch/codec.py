"""The body codec: JSON on the wire, cattrs for shapes."""
from typing import Any, ClassVar

from attrs import Factory, define
from cattrs import Converter, transform_error
from cattrs.preconf.orjson import make_converter
from orjson import JSONDecodeError, JSONEncodeError, dumps, loads

from .errors import DecodeError, EncodeError, MissingFieldError

_MISSING = "required field missing"


def _split_missing(messages: list[str]) -> list[str]:
    """Pull the JSON paths out of cattrs' "required field missing @ $.x" messages."""
    return [m.partition(" @ ")[2] or "$" for m in messages if m.startswith(_MISSING)]


@define
class BodyCodec:
    converter: Converter = Factory(make_converter)
    content_type: ClassVar[str] = "application/json"

    def decode(self, payload: bytes, target: Any = Any) -> Any:
        """Parse the payload and project it onto `target`.

        Unknown fields are ignored.

        :raises DecodeError: On an empty or invalid payload, or a shape mismatch.
        :raises MissingFieldError: When required fields are absent.
        """
        if not payload or not payload.strip():
            raise DecodeError("empty body")
        try:
            raw = loads(payload)
        except JSONDecodeError as exc:
            raise DecodeError(f"invalid JSON: {exc}") from exc
        if target is Any:
            return raw
        try:
            return self.converter.structure(raw, target)
        except Exception as exc:
            messages = transform_error(exc)
            if missing := _split_missing(messages):
                raise MissingFieldError(missing, messages) from exc
            raise DecodeError(
                f"payload does not fit {getattr(target, '__name__', target)}",
                messages,
            ) from exc

    def encode(self, value: Any, unstructure_as: Any = None) -> bytes:
        try:
            return dumps(self.converter.unstructure(value, unstructure_as=unstructure_as))
        except JSONEncodeError as exc:
            raise EncodeError(f"cannot encode {type(value).__name__}: {exc}") from exc
