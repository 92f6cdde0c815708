"""Tests for the route table."""
from threading import Thread

import pytest

from udispatch.errors import DuplicateRouteError
from udispatch.requests import HandlerSignature, path_var
from udispatch.routing import RouteTable


def handler() -> None:
    pass


def other_handler() -> None:
    pass


def test_literal_lookup_returns_route() -> None:
    table = RouteTable()
    paths = ["/", "/users", "/users/active", "/about/team"]
    for path in paths:
        table.register("GET", path, HandlerSignature(), handler)

    for path in paths:
        res = table.lookup("GET", path)
        assert res is not None
        assert res.route.pattern.raw == path
        assert res.path_variables == {}


def test_lookup_extracts_variables() -> None:
    table = RouteTable()
    table.register("GET", "/user/{id}", HandlerSignature([path_var("id")]), handler)

    res = table.lookup("GET", "/user/5")
    assert res is not None
    assert res.path_variables == {"id": "5"}
    assert res.route.name == "handler"


def test_lookup_is_per_method() -> None:
    table = RouteTable()
    table.register("GET", "/user", HandlerSignature(), handler)

    assert table.lookup("POST", "/user") is None
    assert table.lookup("GET", "/nope") is None


def test_duplicates() -> None:
    table = RouteTable()
    table.register("GET", "/user/{id}", HandlerSignature(), handler)

    with pytest.raises(DuplicateRouteError):
        table.register("GET", "/user/{id}", HandlerSignature(), other_handler)
    with pytest.raises(DuplicateRouteError) as exc_info:
        table.register("GET", "/user/{name}", HandlerSignature(), other_handler)
    assert exc_info.value.existing == "/user/{id}"

    # A failed registration leaves the table alone.
    assert len(table) == 1
    # Same pattern, different method is fine.
    table.register("DELETE", "/user/{id}", HandlerSignature(), other_handler)
    assert len(table) == 2


def test_literal_segments_win() -> None:
    """A literal segment beats a placeholder, whatever the registration order."""
    table = RouteTable()
    table.register("GET", "/user/{id}", HandlerSignature(), handler, name="by_id")
    table.register("GET", "/user/search", HandlerSignature(), handler, name="search")

    assert table.lookup("GET", "/user/search").route.name == "search"  # type: ignore
    assert table.lookup("GET", "/user/5").route.name == "by_id"  # type: ignore


def test_leftmost_literal_decides() -> None:
    table = RouteTable()
    table.register("GET", "/{a}/x", HandlerSignature(), handler, name="late_literal")
    table.register("GET", "/y/{b}", HandlerSignature(), handler, name="early_literal")

    assert table.lookup("GET", "/y/x").route.name == "early_literal"  # type: ignore


def test_registration_order_without_literal_priority() -> None:
    """A later literal route is shadowed when literal priority is off."""
    table = RouteTable(literal_priority=False)
    table.register("GET", "/user/{id}", HandlerSignature(), handler, name="by_id")
    table.register("GET", "/user/search", HandlerSignature(), handler, name="search")

    assert table.lookup("GET", "/user/search").route.name == "by_id"  # type: ignore


def test_allowed_methods() -> None:
    table = RouteTable()
    table.register("GET", "/user/{id}", HandlerSignature(), handler)
    table.register("PUT", "/user/{id}", HandlerSignature(), handler)
    table.register("POST", "/user", HandlerSignature(), handler)

    assert table.allowed_methods("/user/5") == {"GET", "PUT"}
    assert table.allowed_methods("/nope") == frozenset()


def test_routes_keep_registration_order() -> None:
    table = RouteTable()
    table.register("GET", "/b/{x}", HandlerSignature(), handler)
    table.register("GET", "/b/a", HandlerSignature(), handler)

    assert [r.pattern.raw for r in table] == ["/b/{x}", "/b/a"]


def test_lookups_during_registration() -> None:
    """Readers never observe a half-built table."""
    table = RouteTable()
    table.register("GET", "/stable", HandlerSignature(), handler)
    misses = []

    def read() -> None:
        for _ in range(2000):
            if table.lookup("GET", "/stable") is None:
                misses.append(1)

    readers = [Thread(target=read) for _ in range(4)]
    for t in readers:
        t.start()
    for ix in range(200):
        table.register("GET", f"/generated/{ix}", HandlerSignature(), handler)
    for t in readers:
        t.join()

    assert not misses
    assert len(table) == 201
