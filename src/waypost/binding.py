"""Parameter binding — from a matched request to handler keyword arguments.

``ParameterBinder.compile`` walks the frozen route table once and builds,
for every route, a tuple of extractors: the converter for each path and
query parameter, the provider for each context parameter. Per request,
``bind`` only runs those extractors.

Resolution by source:

- PATH: capture value by wire name
- QUERY: query string by wire name; for URL-encoded form posts the form
  fields are consulted when the query string lacks the key
- BODY: the whole payload, decoded once by the body codec
- CONTEXT: ``Request``, ``ResponseHandle``, or a provider factory,
  injected without coercion

Missing raw value: declared default, else ``MissingParameterError`` if
required, else ``None``.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from waypost._internal.types import Provider
from waypost.codec import BodyCodec
from waypost.errors import (
    BodyTooLargeError,
    ConfigurationError,
    MissingParameterError,
    ParamConversionError,
)
from waypost.http.request import BodyLimitExceeded, Request
from waypost.http.response import ResponseHandle
from waypost.routing.params import (
    Converter,
    ParamSpec,
    Source,
    resolve_converter,
    type_label,
    unwrap_optional,
)
from waypost.routing.registry import RouteTable
from waypost.routing.route import CompiledRoute, RouteMatch


@dataclass(frozen=True, slots=True)
class BoundRequest:
    """Concrete argument values for one handler call."""

    route: CompiledRoute
    kwargs: dict[str, Any]
    request: Request
    response: ResponseHandle = field(default_factory=ResponseHandle)


@dataclass(frozen=True, slots=True)
class _Extractor:
    spec: ParamSpec
    convert: Converter | None = None
    provider: Callable[[Request, ResponseHandle], Any] | None = None


def _context_provider(
    spec: ParamSpec,
    providers: Mapping[type, Provider],
    route: CompiledRoute,
) -> Callable[[Request, ResponseHandle], Any]:
    target = unwrap_optional(spec.target_type)
    if target is Request:
        return lambda request, _handle: request
    if target is ResponseHandle:
        return lambda _request, handle: handle
    factory = providers.get(target)
    if factory is None:
        msg = (
            f"{route.method} {route.template}: context parameter {spec.name!r} "
            f"has type {spec.target_type!r}, which is neither Request, "
            "ResponseHandle, nor a registered provider."
        )
        raise ConfigurationError(msg)
    return lambda _request, _handle: factory()


class ParameterBinder:
    """Resolves handler arguments from requests, using per-route plans fixed at startup."""

    __slots__ = ("_codec", "_max_body_size", "_plans")

    def __init__(
        self,
        plans: Mapping[tuple[str, str], tuple[_Extractor, ...]],
        *,
        codec: BodyCodec,
        max_body_size: int,
    ) -> None:
        self._plans = MappingProxyType(dict(plans))
        self._codec = codec
        self._max_body_size = max_body_size

    @classmethod
    def compile(
        cls,
        table: RouteTable,
        *,
        codec: BodyCodec,
        providers: Mapping[type, Provider] | None = None,
        strict_bool: bool = True,
        max_body_size: int = 16 * 1024 * 1024,
    ) -> "ParameterBinder":
        """Build the extractor plan for every route in *table*.

        Raises ``ConfigurationError`` for parameter types with no
        converter and context parameters nothing can provide.
        """
        providers = providers or {}
        plans: dict[tuple[str, str], tuple[_Extractor, ...]] = {}
        for route in table:
            extractors: list[_Extractor] = []
            for spec in route.handler.params:
                if spec.source is Source.CONTEXT:
                    extractors.append(
                        _Extractor(spec, provider=_context_provider(spec, providers, route))
                    )
                elif spec.source is Source.BODY:
                    extractors.append(_Extractor(spec))
                else:
                    try:
                        convert = resolve_converter(spec.target_type, strict_bool=strict_bool)
                    except ConfigurationError as exc:
                        msg = f"{route.method} {route.template}, parameter {spec.name!r}: {exc}"
                        raise ConfigurationError(msg) from None
                    extractors.append(_Extractor(spec, convert=convert))
                    if spec.has_default and isinstance(spec.default, str):
                        # Surface a bad string default at startup, not on the first request
                        try:
                            convert(spec.default)
                        except ValueError as exc:
                            msg = (
                                f"{route.method} {route.template}: default {spec.default!r} "
                                f"for parameter {spec.name!r} is not a valid "
                                f"{type_label(spec.target_type)}."
                            )
                            raise ConfigurationError(msg) from exc
            plans[route.key] = tuple(extractors)
        return cls(plans, codec=codec, max_body_size=max_body_size)

    async def bind(
        self,
        match: RouteMatch,
        request: Request,
        handle: ResponseHandle | None = None,
    ) -> BoundRequest:
        """Resolve every declared argument of the matched handler.

        Raises ``MissingParameterError``, ``ParamConversionError`` or
        ``BodyTooLargeError``; the handler is not called in that case.
        """
        handle = handle if handle is not None else ResponseHandle()
        route = match.route
        kwargs: dict[str, Any] = {}

        for extractor in self._plans[route.key]:
            spec = extractor.spec
            if extractor.provider is not None:
                kwargs[spec.name] = extractor.provider(request, handle)
            elif spec.source is Source.BODY:
                kwargs[spec.name] = await self._bind_body(spec, request)
            else:
                raw = await self._raw_value(spec, match.path_params, request)
                kwargs[spec.name] = self._coerce(extractor, raw)

        return BoundRequest(route=route, kwargs=kwargs, request=request, response=handle)

    async def _raw_value(
        self,
        spec: ParamSpec,
        path_params: Mapping[str, str],
        request: Request,
    ) -> str | None:
        key = spec.wire_name
        if spec.source is Source.PATH:
            return path_params.get(key)
        value = request.query.get(key)
        if value is None and request.is_form:
            form = await self._read_form(spec, request)
            value = form.get(key)
        return value

    async def _read_form(self, spec: ParamSpec, request: Request) -> Mapping[str, str]:
        try:
            await request.body(limit=self._max_body_size)
        except BodyLimitExceeded:
            raise BodyTooLargeError(spec.wire_name, self._max_body_size) from None
        return await request.form()

    def _coerce(self, extractor: _Extractor, raw: str | None) -> Any:
        spec = extractor.spec
        if raw is None:
            if spec.has_default:
                if not isinstance(spec.default, str):
                    return spec.default
                raw = spec.default
            elif spec.required:
                raise MissingParameterError(spec.wire_name, spec.source.value)
            else:
                return None
        try:
            return extractor.convert(raw)
        except ValueError as exc:
            raise ParamConversionError(spec.wire_name, raw, type_label(spec.target_type)) from exc

    async def _bind_body(self, spec: ParamSpec, request: Request) -> Any:
        try:
            raw = await request.body(limit=self._max_body_size)
        except BodyLimitExceeded:
            raise BodyTooLargeError(spec.wire_name, self._max_body_size) from None

        value = None
        if raw.strip():
            try:
                value = self._codec.decode(raw, spec.target_type)
            except ValueError as exc:
                raise ParamConversionError(spec.wire_name, str(exc), type_label(spec.target_type)) from exc

        if value is None:
            if spec.has_default:
                return spec.default
            if spec.required:
                raise MissingParameterError(spec.wire_name, "body")
        return value
