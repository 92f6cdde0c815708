from collections.abc import Callable, Sequence
from typing import Any, Literal, NewType, TypeAlias

#: The route name.
RouteName = NewType("RouteName", str)

RouteTags: TypeAlias = Sequence[str]

#: The HTTP request method.
Method: TypeAlias = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

METHODS: tuple[Method, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

Handler: TypeAlias = Callable[..., Any]
