from udispatch import Request
from udispatch.base import App

from .apps import make_user_app


async def test_route_app_prefix() -> None:
    app = App()
    app.route_app(make_user_app(), "/api", "users")

    assert {r.pattern.raw for r in app.routes} == {
        "/api/user/{id}",
        "/api/user/search",
        "/api/user",
    }
    assert {r.name for r in app.routes} >= {"users.get_user", "users.create_user"}

    resp = await app.dispatch(Request("GET", "/api/user/5"))
    assert resp.body == b"User ID: 5"
    resp = await app.dispatch(Request("GET", "/user/5"))
    assert resp.status_code == 404
