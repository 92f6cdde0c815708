"""Tests for deriving handler signatures."""
from typing import Annotated

import pytest

from udispatch import Header, Method, ReqBody, Request, RouteName, body
from udispatch.base import App
from udispatch.errors import InvalidSignatureError
from udispatch.requests import (
    HandlerSignature,
    ParamSource,
    QuerySpec,
    derive_signature,
    path_var,
)

from .models import User


def test_derive_signature() -> None:
    def handler(
        id: int,
        user: ReqBody[User],
        page: int = 1,
        q=None,
        x_token: Header[str] = "",
        term: Annotated[str, QuerySpec("search")] = "",
        req: Request = None,  # type: ignore
        name: RouteName = None,  # type: ignore
        method: Method = "GET",
    ) -> None:
        ...

    sig = derive_signature(handler, ["id"])
    by_name = {p.name: p for p in sig}

    assert [p.name for p in sig] == [
        "id",
        "user",
        "page",
        "q",
        "x_token",
        "term",
        "req",
        "name",
        "method",
    ]
    assert by_name["id"].source is ParamSource.PATH
    assert by_name["id"].type is int
    assert by_name["user"].source is ParamSource.BODY
    assert by_name["user"].type is User
    assert by_name["page"].source is ParamSource.QUERY
    assert not by_name["page"].required
    assert by_name["page"].default == 1
    assert by_name["q"].type is str
    assert by_name["x_token"].source is ParamSource.HEADER
    assert by_name["x_token"].key == "x-token"
    assert by_name["term"].source is ParamSource.QUERY
    assert by_name["term"].key == "search"
    assert by_name["req"].source is ParamSource.REQUEST
    assert by_name["name"].source is ParamSource.ROUTE_NAME
    assert by_name["method"].source is ParamSource.METHOD


def test_query_is_required_without_default() -> None:
    def handler(page: int) -> None:
        ...

    (page,) = derive_signature(handler, [])
    assert page.source is ParamSource.QUERY
    assert page.required


def test_one_body_at_most() -> None:
    with pytest.raises(InvalidSignatureError):
        HandlerSignature([body("a", User), body("b", User)])

    def handler(a: ReqBody[User], b: ReqBody[User]) -> None:
        ...

    with pytest.raises(InvalidSignatureError):
        derive_signature(handler, [])


def test_var_args_rejected() -> None:
    def handler(*args, **kwargs) -> None:
        ...

    with pytest.raises(InvalidSignatureError):
        derive_signature(handler, [])


def test_explicit_signature_is_checked_against_pattern() -> None:
    app = App()

    def handler(id: str) -> str:
        return id

    with pytest.raises(InvalidSignatureError):
        app.route("/user/{user_id}", handler, signature=HandlerSignature([path_var("id")]))
