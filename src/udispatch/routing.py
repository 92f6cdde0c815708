"""The route table."""
from collections.abc import Iterator, Mapping
from logging import getLogger
from threading import Lock
from types import MappingProxyType

from attrs import Factory, define, field, frozen

from .errors import DuplicateRouteError
from .path import PathPattern, match, parse_pattern
from .requests import HandlerSignature
from .types import Handler, Method, RouteName, RouteTags

log = getLogger(__name__)


@frozen
class Route:
    method: Method
    pattern: PathPattern
    handler: Handler = field(eq=False)
    signature: HandlerSignature
    name: RouteName
    tags: RouteTags = ()


@frozen
class MatchResult:
    route: Route
    path_variables: Mapping[str, str]


@frozen
class _Snapshot:
    """An immutable view of the table; replaced wholesale on registration."""

    routes: tuple[Route, ...] = ()
    #: Per method, in lookup order.
    candidates: Mapping[str, tuple[Route, ...]] = MappingProxyType({})


def _build_snapshot(routes: tuple[Route, ...], literal_priority: bool) -> _Snapshot:
    by_method: dict[str, list[tuple[int, Route]]] = {}
    for ix, route in enumerate(routes):
        by_method.setdefault(route.method, []).append((ix, route))
    candidates = {}
    for method, indexed in by_method.items():
        if literal_priority:
            indexed.sort(key=lambda ir: (ir[1].pattern.specificity, ir[0]))
        candidates[method] = tuple(r for _, r in indexed)
    return _Snapshot(routes, MappingProxyType(candidates))


@define
class RouteTable:
    """Holds `(method, pattern) -> handler` bindings.

    Lookups read the current snapshot without locking. Registrations are
    serialized and publish a fresh snapshot.

    :param literal_priority: When two patterns match the same path, prefer the
        one with a literal segment at the first position where they differ.
        Registration order breaks remaining ties. When disabled, lookup is
        pure registration order, so a literal route registered after an
        overlapping placeholder route (`/user/search` after `/user/{id}`) is
        shadowed by it.
    """

    literal_priority: bool = True
    _snapshot: _Snapshot = Factory(_Snapshot)
    _lock: Lock = Factory(Lock)

    def register(
        self,
        method: Method,
        pattern: PathPattern | str,
        signature: HandlerSignature,
        handler: Handler,
        name: str | None = None,
        tags: RouteTags = (),
    ) -> Route:
        if isinstance(pattern, str):
            pattern = parse_pattern(pattern)
        route = Route(
            method,
            pattern,
            handler,
            signature,
            RouteName(name if name is not None else handler.__name__),
            tags,
        )
        with self._lock:
            current = self._snapshot
            for existing in current.routes:
                if existing.method == method and existing.pattern.shape == pattern.shape:
                    raise DuplicateRouteError(method, pattern.raw, existing.pattern.raw)
            self._snapshot = _build_snapshot(
                (*current.routes, route), self.literal_priority
            )
        log.debug("Registered %s %s -> %s", method, pattern, route.name)
        return route

    def lookup(self, method: str, path: str) -> MatchResult | None:
        for route in self._snapshot.candidates.get(method, ()):
            if (path_variables := match(route.pattern, path)) is not None:
                return MatchResult(route, MappingProxyType(path_variables))
        return None

    def allowed_methods(self, path: str) -> frozenset[str]:
        """The methods with at least one route matching the path."""
        return frozenset(
            r.method for r in self._snapshot.routes if match(r.pattern, path) is not None
        )

    @property
    def routes(self) -> tuple[Route, ...]:
        return self._snapshot.routes

    def __iter__(self) -> Iterator[Route]:
        return iter(self._snapshot.routes)

    def __len__(self) -> int:
        return len(self._snapshot.routes)
