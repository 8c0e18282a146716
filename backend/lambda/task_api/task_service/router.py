"""router.py — Static (method, path) routing table.

Resolution order for a request:

    1. exact method + exact path
    2. method + path prefix (longest prefix wins, segment boundary only)
    3. fallback: the default handler when one is configured, otherwise
       MethodNotAllowed if any route serves the path, else RouteNotFound

Routing is pure: it inspects the table and the request line, nothing else.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

__all__ = [
    "MethodNotAllowed",
    "Route",
    "RouteMatch",
    "RouteNotFound",
    "Router",
    "normalize_path",
]

Handler = Callable[..., Any]


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    handler: Handler
    prefix: bool = False


@dataclass(frozen=True)
class RouteMatch:
    handler: Handler
    route: Optional[Route] = None
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MethodNotAllowed:
    method: str
    path: str
    allowed: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RouteNotFound:
    method: str
    path: str


Resolution = Union[RouteMatch, MethodNotAllowed, RouteNotFound]


def normalize_path(path: str, base_path: str = "") -> str:
    """Strip an optional mount prefix and trailing slashes; always start with '/'."""
    path = path or "/"
    if not path.startswith("/"):
        path = "/" + path
    if base_path and (path == base_path or path.startswith(base_path + "/")):
        path = path[len(base_path):] or "/"
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


class Router:
    def __init__(
        self,
        routes: Sequence[Route] = (),
        *,
        base_path: str = "",
        default: Optional[Handler] = None,
    ) -> None:
        self._routes: List[Route] = []
        self.base_path = base_path.rstrip("/")
        self.default = default
        for route in routes:
            self._add(route)

    def add(self, method: str, path: str, handler: Handler, *, prefix: bool = False) -> "Router":
        self._add(Route(method=method, path=path, handler=handler, prefix=prefix))
        return self

    def _add(self, route: Route) -> None:
        path = normalize_path(route.path)
        self._routes.append(Route(route.method.upper(), path, route.handler, route.prefix))

    @property
    def routes(self) -> Tuple[Route, ...]:
        return tuple(self._routes)

    @staticmethod
    def _prefix_tail(route: Route, path: str) -> Optional[str]:
        if not route.prefix:
            return None
        head = route.path.rstrip("/") + "/"
        if path.startswith(head) and len(path) > len(head):
            return path[len(head):]
        return None

    def resolve(self, method: str, path: str) -> Resolution:
        method = (method or "").upper()
        path = normalize_path(path, self.base_path)

        for route in self._routes:
            if route.method == method and route.path == path:
                return RouteMatch(handler=route.handler, route=route)

        best: Optional[Tuple[Route, str]] = None
        for route in self._routes:
            if route.method != method:
                continue
            tail = self._prefix_tail(route, path)
            if tail is not None and (best is None or len(route.path) > len(best[0].path)):
                best = (route, tail)
        if best is not None:
            route, tail = best
            return RouteMatch(handler=route.handler, route=route, params={"tail": tail})

        if self.default is not None:
            return RouteMatch(handler=self.default)

        allowed = sorted({
            route.method
            for route in self._routes
            if route.path == path or self._prefix_tail(route, path) is not None
        })
        if allowed:
            return MethodNotAllowed(method=method, path=path, allowed=tuple(allowed))
        return RouteNotFound(method=method, path=path)
