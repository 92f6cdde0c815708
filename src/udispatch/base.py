from collections.abc import Callable, Iterable, Sequence
from functools import partial
from typing import Any, TypeVar

from attrs import Factory, define, field
from cattrs import Converter
from cattrs.preconf.orjson import make_converter

from .binding import ParameterBinder
from .codec import BodyCodec
from .config import DispatchSettings
from .dispatcher import Dispatcher, ErrorHandler
from .errors import InvalidSignatureError
from .path import parse_pattern
from .requests import HandlerSignature, ParamSource, Request, derive_signature
from .responses import Response, default_shorthands
from .returns import ViewRenderer
from .routing import Route, RouteTable
from .shorthands import ResponseShorthand
from .types import Handler, Method, RouteName, RouteTags

__all__ = ["App"]

E = TypeVar("E", bound=Exception)
H = TypeVar("H", bound=Callable[..., Any])


@define
class App:
    """The route registry.

    Handlers are registered explicitly, either through `route` or through the
    method decorators. Each registration parses the path pattern and resolves
    the handler signature right away, so dispatching needs no reflection.
    """

    #: Used for request bodies and structured responses.
    converter: Converter = Factory(make_converter)
    settings: DispatchSettings = Factory(DispatchSettings)
    view_renderer: ViewRenderer | None = None
    _route_table: RouteTable = field(
        default=Factory(
            lambda self: RouteTable(self.settings.literal_priority), takes_self=True
        ),
        init=False,
    )
    _error_handlers: dict[type[BaseException], ErrorHandler] = field(
        default=Factory(dict), init=False
    )
    _shorthands: Sequence[type[ResponseShorthand]] = field(
        default=default_shorthands, init=False
    )

    @property
    def routes(self) -> tuple[Route, ...]:
        return self._route_table.routes

    def route(
        self,
        path: str,
        handler: Handler,
        methods: Iterable[Method] = {"GET"},
        name: str | None = None,
        tags: RouteTags = (),
        signature: HandlerSignature | None = None,
    ) -> Any:
        """Register routes. This is not a decorator.

        :param path: The path pattern on which to serve the handler.
        :param handler: The handler to route to.
        :param methods: The HTTP methods on which to serve the handler.
        :param name: The route name. If not provided, will use the handler name.
        :param tags: Free-form tags.
        :param signature: Where the handler arguments come from. If not
            provided, it is derived from the handler annotations.
        """
        pattern = parse_pattern(path)
        if signature is None:
            signature = derive_signature(handler, pattern.path_params)
        else:
            _check_path_vars(signature, pattern.path_params, path)
        if name is None:
            name = handler.__name__
        for method in methods:
            self._route_table.register(
                method, pattern, signature, handler, RouteName(name), tags
            )
        return handler

    def get(
        self, path: str, name: str | None = None, tags: RouteTags = ()
    ) -> Callable[[H], H]:
        return partial(self.route, path, name=name, methods=["GET"], tags=tags)

    def post(
        self, path: str, name: str | None = None, tags: RouteTags = ()
    ) -> Callable[[H], H]:
        return partial(self.route, path, name=name, methods=["POST"], tags=tags)

    def put(
        self, path: str, name: str | None = None, tags: RouteTags = ()
    ) -> Callable[[H], H]:
        return partial(self.route, path, name=name, methods=["PUT"], tags=tags)

    def patch(
        self, path: str, name: str | None = None, tags: RouteTags = ()
    ) -> Callable[[H], H]:
        return partial(self.route, path, name=name, methods=["PATCH"], tags=tags)

    def delete(
        self, path: str, name: str | None = None, tags: RouteTags = ()
    ) -> Callable[[H], H]:
        return partial(self.route, path, name=name, methods=["DELETE"], tags=tags)

    def head(
        self, path: str, name: str | None = None, tags: RouteTags = ()
    ) -> Callable[[H], H]:
        return partial(self.route, path, name=name, methods=["HEAD"], tags=tags)

    def options(
        self, path: str, name: str | None = None, tags: RouteTags = ()
    ) -> Callable[[H], H]:
        return partial(self.route, path, name=name, methods=["OPTIONS"], tags=tags)

    def route_app(
        self, app: "App", prefix: str | None = None, name_prefix: str | None = None
    ) -> None:
        """Register all routes from a different app under an optional path prefix."""
        for route in app.routes:
            name = route.name
            if name_prefix is not None:
                name = RouteName(f"{name_prefix}.{name}")
            path = route.pattern.raw
            if prefix:
                path = prefix if path == "/" else prefix + path
            self.route(
                path,
                route.handler,
                methods=[route.method],
                name=name,
                tags=route.tags,
                signature=route.signature,
            )

    def exception_handler(self, exc_type: type[E]) -> Callable[[Callable[[E], Any]], Any]:
        """Map handler faults of this type (and subclasses) onto a result.

        The mapper may return anything a handler may return.
        """

        def register(mapper: Callable[[E], Any]) -> Callable[[E], Any]:
            self._error_handlers[exc_type] = mapper
            return mapper

        return register

    def add_response_shorthand(self, shorthand: type[ResponseShorthand]) -> "App":
        """Add a response shorthand to the App.

        Shorthands are consulted in order, before values fall back to JSON.
        """
        self._shorthands = (*self._shorthands, shorthand)
        return self

    def make_dispatcher(self) -> Dispatcher:
        return Dispatcher(
            self._route_table,
            ParameterBinder(BodyCodec(self.converter)),
            settings=self.settings,
            view_renderer=self.view_renderer,
            error_handlers=self._error_handlers,
            shorthands=self._shorthands,
        )

    async def dispatch(self, request: Request) -> Response:
        return await self.make_dispatcher().dispatch(request)


def _check_path_vars(
    signature: HandlerSignature, path_params: Sequence[str], path: str
) -> None:
    for p in signature:
        if p.source is ParamSource.PATH and p.key not in path_params:
            raise InvalidSignatureError(
                f"{p.name!r} is bound to path variable {p.key!r}, "
                f"which {path!r} does not declare"
            )
