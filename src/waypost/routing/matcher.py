"""Request matching against a frozen ``RouteTable``.

Two steps per request:

1. Exact literal lookup of ``(method, path)``, O(1).
2. On a miss, the method's parametric routes are tried in registration
   order and the first that matches wins.

A literal route therefore always beats a parametric one for the same
concrete path, even when the parametric route was registered first.
Between two parametric routes that both match, the earlier registration
wins. That tie-break is deterministic, but it means ``/files/{name}``
registered before ``/files/{id}`` shadows the latter completely.

The fallback is a linear scan, which is fine for tens of routes per
method. Beyond a few hundred, a trie keyed by path segment is the
replacement.
"""

from waypost.errors import NoRoute
from waypost.routing.registry import RouteTable
from waypost.routing.route import RouteMatch


class RequestMatcher:
    """Finds the route owning a (method, path) pair.

    Holds only a reference to the frozen table, so one matcher is shared
    by every request.
    """

    __slots__ = ("_table",)

    def __init__(self, table: RouteTable) -> None:
        self._table = table

    @property
    def table(self) -> RouteTable:
        return self._table

    def match(self, method: str, path: str) -> RouteMatch:
        """Return the matched route and its raw capture values.

        ``HEAD`` falls back to ``GET`` routes when no ``HEAD`` route
        matches. Raises ``NoRoute`` when nothing accepts the request.
        """
        method = method.upper()
        found = self._match_method(method, path)
        if found is None and method == "HEAD":
            found = self._match_method("GET", path)
        if found is None:
            raise NoRoute(method, path)
        return found

    def _match_method(self, method: str, path: str) -> RouteMatch | None:
        route = self._table.static.get((method, path))
        if route is not None:
            return RouteMatch(route=route, path_params={})

        for candidate in self._table.dynamic.get(method, ()):
            params = candidate.match(path)
            if params is not None:
                return RouteMatch(route=candidate, path_params=params)
        return None
