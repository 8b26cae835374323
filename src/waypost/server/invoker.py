"""Handler invocation and outcome classification.

Every way a call can end is folded into one ``DispatchResult``:

- return value -> ``OK``
- ``DomainError`` -> ``DOMAIN_ERROR``, code and message unchanged
- an exception with a registered mapper -> whatever the mapper returns
- any other exception -> ``INTERNAL_ERROR`` with the configured generic
  message; the exception is logged, never echoed to the client

``NOT_FOUND`` and ``BAD_REQUEST`` are produced before the handler runs,
by the request pipeline, through the same constructors.
"""

import enum
import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from waypost._internal.invoke import invoke
from waypost._internal.types import ErrorMapper
from waypost.binding import BoundRequest
from waypost.config import AppConfig
from waypost.errors import DomainError
from waypost.http.request import Request
from waypost.routing.route import CompiledRoute

logger = logging.getLogger("waypost.server")


class Outcome(enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    DOMAIN_ERROR = "domain_error"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """How one request ended. Consumed exactly once by ``ResponseWriter``."""

    outcome: Outcome
    payload: Any = None
    code: str | None = None
    message: str | None = None
    user_tip: str | None = None

    @property
    def is_success(self) -> bool:
        return self.outcome is Outcome.OK

    @classmethod
    def ok(cls, payload: Any) -> "DispatchResult":
        return cls(Outcome.OK, payload=payload)

    @classmethod
    def not_found(cls, message: str) -> "DispatchResult":
        return cls(Outcome.NOT_FOUND, message=message)

    @classmethod
    def bad_request(cls, message: str) -> "DispatchResult":
        return cls(Outcome.BAD_REQUEST, message=message)

    @classmethod
    def domain_error(cls, exc: DomainError) -> "DispatchResult":
        return cls(
            Outcome.DOMAIN_ERROR,
            code=exc.code,
            message=exc.message,
            user_tip=exc.user_tip,
        )

    @classmethod
    def internal_error(cls, message: str) -> "DispatchResult":
        return cls(Outcome.INTERNAL_ERROR, message=message)


async def call_error_mapper(mapper: ErrorMapper, request: Request, exc: Exception) -> Any:
    """Invoke a user-registered exception mapper with introspected arguments.

    Mappers may accept zero, one (exc), or two (request, exc) args.
    Supports both sync and async mappers.
    """
    params = list(inspect.signature(mapper).parameters.values())

    if len(params) >= 2:
        result = mapper(request, exc)
    elif len(params) == 1:
        result = mapper(exc)
    else:
        result = mapper()

    if inspect.isawaitable(result):
        result = await result
    return result


class Invoker:
    """Calls bound handlers and classifies how they ended.

    *error_mappers* maps exception types to mappers. The mapper for the
    nearest class in the exception's MRO decides the outcome; with no
    mapper, or one that returns None, the exception is a 500.
    """

    __slots__ = ("_config", "_error_mappers")

    def __init__(
        self,
        config: AppConfig | None = None,
        error_mappers: Mapping[type, ErrorMapper] | None = None,
    ) -> None:
        self._config = config or AppConfig()
        self._error_mappers: dict[type, ErrorMapper] = dict(error_mappers or {})

    async def invoke(self, route: CompiledRoute, bound: BoundRequest) -> DispatchResult:
        try:
            payload = await invoke(
                route.handler.func,
                bound.kwargs,
                offload=self._config.offload_sync_handlers,
            )
        except Exception as exc:
            return await self.classify(exc, route, bound.request)
        return DispatchResult.ok(payload)

    async def classify(self, exc: Exception, route: CompiledRoute, request: Request) -> DispatchResult:
        """Fold an exception raised while serving *route* into a result."""
        if isinstance(exc, DomainError):
            return self._domain_error(exc, request)

        mapped = await self._map(exc, request)
        if mapped is not None:
            return mapped

        logger.error(
            "500 %s %s (query=%r, client=%s, handler=%s)",
            request.method,
            request.path,
            request.query.raw.decode("latin-1"),
            request.client,
            route.handler.label,
            exc_info=exc,
        )
        return DispatchResult.internal_error(self._config.internal_error_message)

    def _domain_error(self, exc: DomainError, request: Request) -> DispatchResult:
        logger.info(
            "Domain error %s from %s %s: %s",
            exc.code,
            request.method,
            request.path,
            exc.message,
        )
        return DispatchResult.domain_error(exc)

    def _find_mapper(self, exc_type: type) -> ErrorMapper | None:
        for cls in exc_type.__mro__:
            mapper = self._error_mappers.get(cls)
            if mapper is not None:
                return mapper
        return None

    async def _map(self, exc: Exception, request: Request) -> DispatchResult | None:
        mapper = self._find_mapper(type(exc))
        if mapper is None:
            return None

        try:
            result = await call_error_mapper(mapper, request, exc)
        except DomainError as raised:
            result = raised
        except Exception:
            logger.exception(
                "Error mapper for %s failed on %s %s",
                type(exc).__name__,
                request.method,
                request.path,
            )
            return None

        if isinstance(result, DomainError):
            return self._domain_error(result, request)
        if isinstance(result, DispatchResult):
            logger.info(
                "Mapped %s to %s on %s %s",
                type(exc).__name__,
                result.outcome.name,
                request.method,
                request.path,
            )
            return result
        if result is not None:
            logger.error(
                "Error mapper for %s returned %r; expected a DomainError or DispatchResult",
                type(exc).__name__,
                result,
            )
        return None
