"""HandlerRef, CompiledRoute, and RouteMatch frozen dataclasses."""

import re
from dataclasses import dataclass

from waypost._internal.types import Handler
from waypost.errors import ConfigurationError
from waypost.routing.params import ParamSpec, Source


@dataclass(frozen=True, slots=True)
class HandlerRef:
    """A handler callable plus the static list of its parameter specs.

    The specs are the complete binding contract: the binder never looks
    at the callable's signature.
    """

    func: Handler
    params: tuple[ParamSpec, ...] = ()
    name: str | None = None

    def __post_init__(self) -> None:
        seen: set[str] = set()
        body_specs = 0
        for spec in self.params:
            if spec.name in seen:
                msg = f"Handler {self.label} declares parameter {spec.name!r} twice."
                raise ConfigurationError(msg)
            seen.add(spec.name)
            if spec.source is Source.BODY:
                body_specs += 1
        if body_specs > 1:
            msg = f"Handler {self.label} declares {body_specs} body parameters; at most one is allowed."
            raise ConfigurationError(msg)

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        return getattr(self.func, "__qualname__", repr(self.func))

    @property
    def body_spec(self) -> ParamSpec | None:
        for spec in self.params:
            if spec.source is Source.BODY:
                return spec
        return None


@dataclass(frozen=True, slots=True)
class CompiledRoute:
    """A route after template compilation.

    Created once by ``RouteRegistry.register`` and never mutated.
    ``len(param_names)`` always equals ``pattern.groups``.
    """

    method: str
    template: str
    pattern: re.Pattern[str]
    param_names: tuple[str, ...]
    handler: HandlerRef

    @property
    def key(self) -> tuple[str, str]:
        return (self.method, self.template)

    @property
    def is_static(self) -> bool:
        return not self.param_names

    def match(self, path: str) -> dict[str, str] | None:
        """Capture values by placeholder name, or None if *path* doesn't match."""
        m = self.pattern.fullmatch(path)
        if m is None:
            return None
        return dict(zip(self.param_names, m.groups(), strict=True))


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: CompiledRoute
    path_params: dict[str, str]
