from .errors import DispatchError, ErrorKind
from .requests import (
    Header,
    HeaderSpec,
    JsonBodyLoader,
    QuerySpec,
    ReqBody,
    Request,
    body,
    header,
    path_var,
    query,
)
from .responses import Response
from .returns import Data, RenderView
from .status import Found, Headers, ResponseException, SeeOther
from .types import Method, RouteName

__all__ = [
    "body",
    "Data",
    "DispatchError",
    "ErrorKind",
    "Header",
    "header",
    "HeaderSpec",
    "JsonBodyLoader",
    "Method",
    "path_var",
    "query",
    "QuerySpec",
    "redirect_to_get",
    "redirect",
    "RenderView",
    "ReqBody",
    "Request",
    "Response",
    "ResponseException",
    "RouteName",
]


def redirect(location: str, headers: Headers = {}) -> Found[None]:
    return Found(None, headers | {"Location": location})


def redirect_to_get(location: str, headers: Headers = {}) -> SeeOther[None]:
    return SeeOther(None, headers | {"Location": location})
