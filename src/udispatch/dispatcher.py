"""Turning a `Request` into a `Response`.

Every request moves through::

    RECEIVED -> ROUTED -> BOUND -> INVOKED -> ENCODED -> SENT

or ends in `FAILED`, recording an `ErrorKind`. Failures are always turned into
a response; nothing escapes to the transport.
"""
from asyncio import TimeoutError as AsyncTimeoutError
from asyncio import wait_for
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from inspect import isawaitable, iscoroutinefunction
from logging import getLogger
from types import MappingProxyType
from typing import Any, TypeAlias

from attrs import Factory, define, field
from starlette.concurrency import run_in_threadpool

from .binding import ParameterBinder
from .codec import BodyCodec
from .config import DispatchSettings
from .errors import (
    BindingError,
    EncodeError,
    ErrorKind,
    HandlerTimeoutError,
    MissingPathVariableError,
    ViewRenderingError,
)
from .requests import Request
from .responses import Response, default_shorthands, error_response, make_response
from .returns import HandlerResult, ViewRenderer, resolve_result
from .routing import MatchResult, Route, RouteTable
from .shorthands import ResponseShorthand
from .status import ResponseException

__all__ = ["DispatchState", "Dispatcher", "ErrorHandler", "Exchange"]

log = getLogger(__name__)

#: Maps a handler fault onto anything a handler may return.
ErrorHandler: TypeAlias = Callable[[Exception], Any]


class DispatchState(Enum):
    RECEIVED = "received"
    ROUTED = "routed"
    BOUND = "bound"
    INVOKED = "invoked"
    ENCODED = "encoded"
    SENT = "sent"
    FAILED = "failed"


_NEXT = {
    DispatchState.RECEIVED: DispatchState.ROUTED,
    DispatchState.ROUTED: DispatchState.BOUND,
    DispatchState.BOUND: DispatchState.INVOKED,
    DispatchState.INVOKED: DispatchState.ENCODED,
    DispatchState.ENCODED: DispatchState.SENT,
}


@define
class Exchange:
    """The life of a single request. Owned by one `Dispatcher.handle` call."""

    request: Request
    state: DispatchState = DispatchState.RECEIVED
    history: list[DispatchState] = Factory(lambda: [DispatchState.RECEIVED])
    match: MatchResult | None = None
    arguments: dict[str, Any] | None = None
    result: HandlerResult | None = None
    failure: ErrorKind | None = None
    response: Response | None = None

    def advance(self, state: DispatchState) -> None:
        if _NEXT.get(self.state) is not state:
            raise RuntimeError(f"Illegal transition {self.state.name} -> {state.name}")
        self.state = state
        self.history.append(state)
        log.debug("%s %s: %s", self.request.method, self.request.path, state.name)

    def fail(self, kind: ErrorKind, response: Response) -> "Exchange":
        if self.request.method == "HEAD":
            response = response.without_body()
        self.state = DispatchState.FAILED
        self.history.append(DispatchState.FAILED)
        self.failure = kind
        self.response = response
        log.debug(
            "%s %s: FAILED(%s) -> %s",
            self.request.method,
            self.request.path,
            kind.value,
            response.status_code,
        )
        return self


@define
class Dispatcher:
    table: RouteTable
    binder: ParameterBinder = Factory(ParameterBinder)
    codec: BodyCodec = Factory(lambda self: self.binder.codec, takes_self=True)
    settings: DispatchSettings = Factory(DispatchSettings)
    view_renderer: ViewRenderer | None = None
    error_handlers: Mapping[type[BaseException], ErrorHandler] = field(
        default=Factory(dict), converter=lambda m: MappingProxyType(dict(m))
    )
    shorthands: Sequence[type[ResponseShorthand]] = default_shorthands

    async def dispatch(self, request: Request) -> Response:
        exchange = await self.handle(request)
        return exchange.response  # type: ignore[return-value]

    async def handle(self, request: Request) -> Exchange:
        ex = Exchange(request)

        match = self._route(request)
        if match is None:
            return self._fail_routing(ex)
        ex.match = match
        ex.advance(DispatchState.ROUTED)

        try:
            ex.arguments = self.binder.bind(match.route.signature, request, match)
        except MissingPathVariableError as exc:
            log.error(
                "Route %s %s disagrees with its match: %s",
                match.route.method,
                match.route.pattern,
                exc,
                exc_info=True,
            )
            return ex.fail(
                ErrorKind.INTERNAL_INCONSISTENCY,
                error_response(
                    ErrorKind.INTERNAL_INCONSISTENCY, "internal server error", 500
                ),
            )
        except BindingError as exc:
            return ex.fail(
                ErrorKind.BAD_REQUEST,
                error_response(ErrorKind.BAD_REQUEST, str(exc), exc.status, exc.details),
            )
        except ResponseException as exc:
            return self._fail_with_result(
                ex, ErrorKind.BAD_REQUEST, resolve_result(exc.response)
            )
        ex.advance(DispatchState.BOUND)

        try:
            returned = await self._invoke(match.route, ex.arguments)
        except ResponseException as exc:
            return self._fail_with_result(
                ex, ErrorKind.HANDLER_ERROR, resolve_result(exc.response)
            )
        except HandlerTimeoutError:
            log.warning(
                "Handler %s timed out after %ss",
                match.route.name,
                self.settings.handler_timeout,
            )
            return ex.fail(
                ErrorKind.TIMEOUT,
                error_response(ErrorKind.TIMEOUT, "handler timed out", 503),
            )
        except Exception as exc:
            return self._fail_handler(ex, match.route, exc)
        ex.result = resolve_result(returned)
        ex.advance(DispatchState.INVOKED)

        response = self._encode(ex, ex.result)
        if response is None:
            return ex
        ex.response = response
        ex.advance(DispatchState.ENCODED)
        ex.advance(DispatchState.SENT)
        return ex

    def _route(self, request: Request) -> MatchResult | None:
        match = self.table.lookup(request.method, request.path)
        if (
            match is None
            and request.method == "HEAD"
            and self.settings.head_falls_back_to_get
        ):
            match = self.table.lookup("GET", request.path)
        return match

    def _fail_routing(self, ex: Exchange) -> Exchange:
        request = ex.request
        allowed = self.table.allowed_methods(request.path)
        if allowed:
            if "GET" in allowed and self.settings.head_falls_back_to_get:
                allowed = allowed | {"HEAD"}
            return ex.fail(
                ErrorKind.METHOD_NOT_ALLOWED,
                error_response(
                    ErrorKind.METHOD_NOT_ALLOWED,
                    f"method {request.method} not allowed",
                    405,
                    headers={"allow": ", ".join(sorted(allowed))},
                ),
            )
        return ex.fail(
            ErrorKind.NOT_FOUND,
            error_response(ErrorKind.NOT_FOUND, f"no route for {request.path}", 404),
        )

    async def _invoke(self, route: Route, arguments: dict[str, Any]) -> Any:
        handler = route.handler
        if iscoroutinefunction(handler):
            pending = handler(**arguments)
        elif self.settings.run_sync_in_threadpool:
            pending = run_in_threadpool(handler, **arguments)
        else:
            res = handler(**arguments)
            if not isawaitable(res):
                return res
            pending = res
        if self.settings.handler_timeout is None:
            return await pending
        try:
            return await wait_for(pending, self.settings.handler_timeout)
        except AsyncTimeoutError as exc:
            raise HandlerTimeoutError(
                f"{route.name} timed out after {self.settings.handler_timeout}s"
            ) from exc

    def _find_error_handler(self, exc: Exception) -> ErrorHandler | None:
        for cls in type(exc).__mro__:
            if (handler := self.error_handlers.get(cls)) is not None:
                return handler
        return None

    def _fail_handler(self, ex: Exchange, route: Route, exc: Exception) -> Exchange:
        if (error_handler := self._find_error_handler(exc)) is not None:
            try:
                mapped = error_handler(exc)
            except Exception:
                log.exception("Error handler for %r failed", type(exc).__name__)
            else:
                return self._fail_with_result(
                    ex, ErrorKind.HANDLER_ERROR, resolve_result(mapped)
                )
        log.error("Handler %s failed", route.name, exc_info=exc)
        message = (
            f"{type(exc).__name__}: {exc}"
            if self.settings.expose_error_details
            else "internal server error"
        )
        return ex.fail(
            ErrorKind.HANDLER_ERROR,
            error_response(ErrorKind.HANDLER_ERROR, message, 500),
        )

    def _fail_with_result(
        self, ex: Exchange, kind: ErrorKind, result: HandlerResult
    ) -> Exchange:
        """Fail, but with a response supplied by the application."""
        ex.result = result
        response = self._encode(ex, result)
        if response is None:
            return ex
        return ex.fail(kind, response)

    def _encode(self, ex: Exchange, result: HandlerResult) -> Response | None:
        """Encode the result, or fail the exchange and return `None`."""
        try:
            response = make_response(
                result, self.codec, self.shorthands, self.view_renderer
            )
        except (EncodeError, ViewRenderingError) as exc:
            log.error("Cannot encode the result of %s", ex.request.path, exc_info=exc)
            ex.fail(
                ErrorKind.ENCODE_ERROR,
                error_response(ErrorKind.ENCODE_ERROR, str(exc), 500),
            )
            return None
        return self._finalize(ex, response)

    def _finalize(self, ex: Exchange, response: Response) -> Response:
        if ex.request.method == "HEAD":
            return response.without_body()
        return response
