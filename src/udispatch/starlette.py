from asyncio import create_task, sleep
from contextlib import suppress
from typing import TypeAlias

from attrs import define
from starlette.applications import Starlette
from starlette.requests import Request as FrameworkRequest
from starlette.responses import Response as FrameworkResponse
from starlette.routing import Mount, request_response

from .base import App as BaseApp
from .dispatcher import Dispatcher
from .requests import Request
from .responses import Response

__all__ = ["App", "StarletteApp"]


def _raw_path(request: FrameworkRequest) -> str:
    """The path as sent, still percent-encoded."""
    raw = request.scope.get("raw_path")
    if raw is None:
        return request.url.path
    return raw.split(b"?", 1)[0].decode("latin-1")


async def to_request(request: FrameworkRequest) -> Request:
    return Request(
        request.method,
        _raw_path(request),
        dict(request.query_params),
        dict(request.headers),
        await request.body(),
    )


def to_framework_response(resp: Response) -> FrameworkResponse:
    return FrameworkResponse(resp.body, resp.status_code, dict(resp.headers))


def make_endpoint(dispatcher: Dispatcher):
    async def endpoint(request: FrameworkRequest) -> FrameworkResponse:
        return to_framework_response(await dispatcher.dispatch(await to_request(request)))

    return endpoint


@define
class StarletteApp(BaseApp):
    def to_framework_app(self) -> Starlette:
        """Every request goes to the dispatcher; it does its own routing.

        The catch-all mount accepts any method, so unknown methods get the
        dispatcher's 404 or 405.
        """
        endpoint = make_endpoint(self.make_dispatcher())
        return Starlette(routes=[Mount("", app=request_response(endpoint))])

    async def run(
        self,
        port: int = 8000,
        handle_signals: bool = True,
        log_level: str | int | None = None,
    ) -> None:
        """Start serving this app using uvicorn.

        Cancel the task running this to shut down uvicorn.
        """
        from uvicorn import Config, Server

        config = Config(
            self.to_framework_app(),
            port=port,
            access_log=False,
            log_level=log_level if log_level is not None else self.settings.log_level,
        )

        if handle_signals:
            server = Server(config=config)
            await server.serve()
        else:

            class NoSignalsServer(Server):
                def install_signal_handlers(self) -> None:
                    return

            server = NoSignalsServer(config=config)

            t = create_task(server.serve())

            with suppress(BaseException):
                while True:
                    await sleep(360)
            server.should_exit = True
            await t


App: TypeAlias = StarletteApp
