"""Route registry — single-writer builder, immutable table.

Routes are registered during setup and frozen into a ``RouteTable``
when the app starts. The table holds no locks: nothing in it changes
after ``build()``, so request threads read it freely.

Usage::

    registry = RouteRegistry()
    registry.register("GET", "/users/{id}", HandlerRef(get_user, specs))
    table = registry.build()
"""

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from waypost.errors import ConfigurationError, DuplicateRouteError, RegistryFrozenError
from waypost.routing.compiler import compile_template
from waypost.routing.params import Source
from waypost.routing.route import CompiledRoute, HandlerRef

logger = logging.getLogger("waypost.routing")


class RouteTable:
    """The frozen route table produced by ``RouteRegistry.build()``.

    ``static`` maps ``(method, path)`` to literal routes for O(1) lookup.
    ``dynamic`` maps a method to its parametric routes in registration
    order, which is also their match precedence.
    """

    __slots__ = ("_dynamic", "_routes", "_static")

    def __init__(self, routes: tuple[CompiledRoute, ...]) -> None:
        static: dict[tuple[str, str], CompiledRoute] = {}
        dynamic: dict[str, list[CompiledRoute]] = {}
        for route in routes:
            if route.is_static:
                static[route.key] = route
            else:
                dynamic.setdefault(route.method, []).append(route)
        self._routes = routes
        self._static: Mapping[tuple[str, str], CompiledRoute] = MappingProxyType(static)
        self._dynamic: Mapping[str, tuple[CompiledRoute, ...]] = MappingProxyType(
            {method: tuple(rs) for method, rs in dynamic.items()}
        )

    @property
    def routes(self) -> tuple[CompiledRoute, ...]:
        """All routes in registration order."""
        return self._routes

    @property
    def static(self) -> Mapping[tuple[str, str], CompiledRoute]:
        return self._static

    @property
    def dynamic(self) -> Mapping[str, tuple[CompiledRoute, ...]]:
        return self._dynamic

    @property
    def methods(self) -> frozenset[str]:
        return frozenset(route.method for route in self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[CompiledRoute]:
        return iter(self._routes)

    def __repr__(self) -> str:
        return f"RouteTable({len(self._static)} static, {len(self._routes) - len(self._static)} parametric)"


class RouteRegistry:
    """Collects compiled routes at startup.

    One registry per process: route groups register into it rather than
    keeping private tables, so a duplicate across groups is caught too.
    """

    __slots__ = ("_built", "_keys", "_routes")

    def __init__(self) -> None:
        self._routes: list[CompiledRoute] = []
        self._keys: set[tuple[str, str]] = set()
        self._built = False

    def register(self, method: str, template: str, handler: HandlerRef) -> CompiledRoute:
        """Compile *template* and add the route.

        Raises ``DuplicateRouteError`` if (method, template) is taken,
        ``RegistryFrozenError`` after ``build()``, and
        ``ConfigurationError`` for a malformed template or a path
        parameter the template doesn't declare.
        """
        if self._built:
            msg = f"Cannot register {method} {template} after the route table was built."
            raise RegistryFrozenError(msg)

        method = method.upper()
        key = (method, template)
        if key in self._keys:
            raise DuplicateRouteError(method, template)

        compiled = compile_template(template)
        for spec in handler.params:
            if spec.source is Source.PATH and spec.wire_name not in compiled.param_names:
                msg = (
                    f"Handler {handler.label} reads path parameter {spec.wire_name!r}, "
                    f"but {template!r} declares {list(compiled.param_names)}."
                )
                raise ConfigurationError(msg)

        route = CompiledRoute(
            method=method,
            template=template,
            pattern=compiled.regex,
            param_names=compiled.param_names,
            handler=handler,
        )
        self._keys.add(key)
        self._routes.append(route)
        logger.debug("Registered route %s %s -> %s", method, template, handler.label)
        return route

    def build(self) -> RouteTable:
        """Freeze the registry. No more routes can be added."""
        if self._built:
            raise RegistryFrozenError("Route registry was already built.")
        self._built = True
        table = RouteTable(tuple(self._routes))
        logger.info("Route table built with %d routes", len(table))
        return table

    @property
    def is_built(self) -> bool:
        return self._built

    def __len__(self) -> int:
        return len(self._routes)
