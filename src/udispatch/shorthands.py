from typing import Any, Protocol, TypeVar

from .codec import BodyCodec

__all__ = [
    "ResponseShorthand",
    "NoneShorthand",
    "StrShorthand",
    "BytesShorthand",
    "JsonShorthand",
]

T_co = TypeVar("T_co", covariant=True)


class ResponseShorthand(Protocol[T_co]):
    """The base protocol for response shorthands.

    A shorthand decides how a returned value is put on the wire.
    """

    @staticmethod
    def is_union_member(value: Any) -> bool:  # pragma: no cover
        """Return whether the value is handled by this shorthand."""
        ...

    @staticmethod
    def make_body(value: Any, codec: BodyCodec) -> tuple[bytes, str | None]:
        """Produce the body and its content type (`None` to leave it unset)."""
        ...


class NoneShorthand(ResponseShorthand[None]):
    """Support for handlers returning `None`.

    The body is empty and the content type is left unset.
    """

    @staticmethod
    def is_union_member(value: Any) -> bool:
        return value is None

    @staticmethod
    def make_body(_: Any, __: BodyCodec) -> tuple[bytes, str | None]:
        return b"", None


class StrShorthand(ResponseShorthand[str]):
    """Support for handlers returning `str`.

    The content type is set to `text/plain`.
    """

    @staticmethod
    def is_union_member(value: Any) -> bool:
        return isinstance(value, str)

    @staticmethod
    def make_body(value: str, _: BodyCodec) -> tuple[bytes, str | None]:
        return value.encode(), "text/plain"


class BytesShorthand(ResponseShorthand[bytes]):
    """Support for handlers returning `bytes`.

    The content type is set to `application/octet-stream`.
    """

    @staticmethod
    def is_union_member(value: Any) -> bool:
        return isinstance(value, bytes)

    @staticmethod
    def make_body(value: bytes, _: BodyCodec) -> tuple[bytes, str | None]:
        return value, "application/octet-stream"


class JsonShorthand(ResponseShorthand[Any]):
    """Everything else goes through the body codec."""

    @staticmethod
    def is_union_member(value: Any) -> bool:
        return True

    @staticmethod
    def make_body(value: Any, codec: BodyCodec) -> tuple[bytes, str | None]:
        return codec.encode(value), codec.content_type
