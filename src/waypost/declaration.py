"""Handler declarations — from decorated functions to ``HandlerRef``.

The signature of a handler is read exactly once, when the app freezes,
and turned into a tuple of ``ParamSpec``. Requests never inspect it.

Resolution order per parameter:

1. ``Annotated[T, Path() | Query() | Body() | Context()]`` marker
2. ``Request`` / ``ResponseHandle`` annotation, a registered provider
   type, or the bare name ``request`` -> context
3. Name of a template placeholder -> path
4. Dataclass, ``dict``, ``list``, or ``bytes`` annotation -> body
5. Anything else -> query

A parameter with a Python default is optional and falls back to that
default; one without a default is required.

Usage::

    users = RouteGroup("/api/users")

    @users.get("/{user_id}")
    def get_user(user_id: int, verbose: bool = False) -> dict: ...

    @users.post("")
    def create_user(payload: NewUser, request: Request) -> dict: ...

    @users.get("/search")
    def search(page_size: Annotated[int, Query("pageSize")] = 20) -> list: ...
"""

import dataclasses
import inspect
import typing
from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import Any

from waypost._internal.types import Handler
from waypost.errors import ConfigurationError
from waypost.extraction import is_extractable_dataclass
from waypost.http.request import Request
from waypost.http.response import ResponseHandle
from waypost.routing.compiler import parse_template
from waypost.routing.params import MISSING, ParamSpec, Source, unwrap_optional
from waypost.routing.route import HandlerRef

CONTEXT_TYPES: tuple[type, ...] = (Request, ResponseHandle)


# -- Markers --


@dataclass(frozen=True, slots=True)
class ParamMarker:
    """An explicit source for one handler parameter, used inside ``Annotated``."""

    source: Source
    key: str | None = None


def Path(key: str | None = None) -> ParamMarker:  # noqa: N802
    """Read the parameter from the path placeholder *key* (default: its name)."""
    return ParamMarker(Source.PATH, key)


def Query(key: str | None = None) -> ParamMarker:  # noqa: N802
    """Read the parameter from the query string (or URL-encoded form) key."""
    return ParamMarker(Source.QUERY, key)


def Body() -> ParamMarker:  # noqa: N802
    """Decode the whole request body into the parameter's type."""
    return ParamMarker(Source.BODY)


def Context() -> ParamMarker:  # noqa: N802
    """Inject a framework or provider object by type."""
    return ParamMarker(Source.CONTEXT)


# -- Declarations --


@dataclass(frozen=True, slots=True)
class RouteDeclaration:
    """A route waiting to be compiled."""

    method: str
    template: str
    handler: Handler | HandlerRef
    name: str | None = None


def _placeholders(template: str) -> set[str]:
    return {part[0] for part in parse_template(template) if isinstance(part, tuple)}


def _is_body_type(annotation: Any) -> bool:
    target = unwrap_optional(annotation)
    if is_extractable_dataclass(target) or target is bytes:
        return True
    origin = typing.get_origin(target) or target
    return origin in (dict, list)


def _split_annotated(annotation: Any) -> tuple[Any, ParamMarker | None]:
    # Annotated[T, marker] | None keeps its marker and stays optional
    inner = unwrap_optional(annotation)
    if typing.get_origin(inner) is typing.Annotated:
        base, *extras = typing.get_args(inner)
        markers = [e for e in extras if isinstance(e, ParamMarker)]
        if len(markers) > 1:
            raise ConfigurationError(f"Conflicting parameter markers: {markers}")
        if inner is not annotation:
            base = typing.Optional[base]  # noqa: UP007
        return base, (markers[0] if markers else None)
    return annotation, None


def build_handler_ref(
    func: Handler,
    template: str,
    *,
    context_types: Collection[type] = (),
    name: str | None = None,
) -> HandlerRef:
    """Read *func*'s signature once and produce its ``HandlerRef``.

    *context_types* are extra annotation types (registered providers)
    that resolve to context injection.
    """
    label = name or getattr(func, "__qualname__", repr(func))
    try:
        sig = inspect.signature(func, eval_str=True)
    except (NameError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read the signature of handler {label}: {exc}") from exc

    placeholders = _placeholders(template)
    injectable = (*CONTEXT_TYPES, *context_types)
    specs: list[ParamSpec] = []

    for param in sig.parameters.values():
        if param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
            inspect.Parameter.POSITIONAL_ONLY,
        ):
            msg = f"Handler {label}: parameter {param.name!r} must be passable by keyword."
            raise ConfigurationError(msg)

        annotation = param.annotation
        if annotation is inspect.Parameter.empty:
            annotation = Any
        target, marker = _split_annotated(annotation)
        if target is Any and marker is None and param.name != "request":
            target = str

        if marker is not None:
            source = marker.source
            key = marker.key
        elif unwrap_optional(target) in injectable or (param.name == "request" and target is Any):
            source, key = Source.CONTEXT, None
            if target is Any:
                target = Request
        elif param.name in placeholders:
            source, key = Source.PATH, None
        elif _is_body_type(target):
            source, key = Source.BODY, None
        else:
            source, key = Source.QUERY, None

        has_default = param.default is not inspect.Parameter.empty
        specs.append(
            ParamSpec(
                source=source,
                name=param.name,
                target_type=target,
                required=not has_default,
                default=param.default if has_default else MISSING,
                key=key,
            )
        )

    return HandlerRef(func=func, params=tuple(specs), name=name)


def as_handler_ref(
    handler: Handler | HandlerRef,
    template: str,
    *,
    context_types: Collection[type] = (),
    name: str | None = None,
) -> HandlerRef:
    """Pass ``HandlerRef`` through; build one from a plain callable."""
    if isinstance(handler, HandlerRef):
        return handler
    return build_handler_ref(handler, template, context_types=context_types, name=name)


# -- Groups --


class RouteGroup:
    """A set of routes sharing a path prefix.

    A group only carries declarations; it has no route table of its own.
    ``App.include(group)`` registers them into the app's single registry,
    so duplicates across groups are caught at startup.
    """

    __slots__ = ("_declarations", "prefix")

    def __init__(self, prefix: str = "") -> None:
        if prefix and not prefix.startswith("/"):
            raise ConfigurationError(f"Route group prefix {prefix!r} must start with '/'")
        self.prefix = prefix.rstrip("/")
        self._declarations: list[RouteDeclaration] = []

    @property
    def declarations(self) -> tuple[RouteDeclaration, ...]:
        return tuple(self._declarations)

    def add(
        self,
        method: str,
        template: str,
        handler: Handler | HandlerRef,
        *,
        name: str | None = None,
    ) -> None:
        """Declare one route; *template* is relative to the prefix.

        An empty full template is kept as is; ``App.include`` maps it
        to ``/``.
        """
        self._declarations.append(RouteDeclaration(method.upper(), self.prefix + template, handler, name))

    def route(
        self,
        template: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            template: Path relative to the group prefix. Use ``{param}``
                for path parameters.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional label used in logs.
        """

        def decorator(func: Handler) -> Handler:
            for method in methods or ["GET"]:
                self.add(method, template, func, name=name)
            return func

        return decorator

    def get(self, template: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(template, methods=["GET"], name=name)

    def post(self, template: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(template, methods=["POST"], name=name)

    def put(self, template: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(template, methods=["PUT"], name=name)

    def patch(self, template: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(template, methods=["PATCH"], name=name)

    def delete(self, template: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(template, methods=["DELETE"], name=name)

    def include(self, group: "RouteGroup") -> None:
        """Nest *group* under this group's prefix."""
        for decl in group.declarations:
            self._declarations.append(dataclasses.replace(decl, template=self.prefix + decl.template))
