"""Waypost application class.

Mutable during setup (route declarations, groups, providers, hooks).
Frozen into an immutable dispatch pipeline by ``freeze()``, at ASGI
lifespan startup, or on the first request, whichever comes first.
"""

import dataclasses
import inspect
import threading
from collections.abc import Callable
from typing import Any

from waypost._internal.asgi import Receive, Scope, Send
from waypost._internal.types import ErrorMapper, Handler, Provider
from waypost.binding import ParameterBinder
from waypost.codec import BodyCodec, JSONCodec
from waypost.config import AppConfig
from waypost.declaration import RouteDeclaration, RouteGroup, as_handler_ref
from waypost.errors import ConfigurationError, DomainError, RegistryFrozenError
from waypost.routing.matcher import RequestMatcher
from waypost.routing.registry import RouteRegistry, RouteTable
from waypost.routing.route import HandlerRef
from waypost.server.handler import handle_request
from waypost.server.invoker import Invoker
from waypost.server.writer import ResponseWriter


class App:
    """The waypost application.

    Usage::

        app = App()

        @app.get("/api/users/{user_id}")
        def get_user(user_id: int) -> dict:
            return repo.load(user_id)

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the route table, even when several workers
        receive their first request at the same moment. Everything built
        by the freeze is read-only afterwards.
    """

    __slots__ = (
        "_binder",
        "_error_mappers",
        "_freeze_lock",
        "_frozen",
        "_invoker",
        "_matcher",
        "_pending",
        "_providers",
        "_shutdown_hooks",
        "_startup_hooks",
        "_writer",
        "codec",
        "config",
    )

    def __init__(self, config: AppConfig | None = None, *, codec: BodyCodec | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self.codec: BodyCodec = codec or JSONCodec()
        self._pending: list[RouteDeclaration] = []
        self._providers: dict[type, Provider] = {}
        self._error_mappers: dict[type, ErrorMapper] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._matcher: RequestMatcher | None = None
        self._binder: ParameterBinder | None = None
        self._invoker: Invoker | None = None
        self._writer: ResponseWriter | None = None

    # -- Route declaration --

    def route(
        self,
        template: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            template: URL path template. Use ``{param}`` for path parameters.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional label used in logs.
        """

        def decorator(func: Handler) -> Handler:
            for method in methods or ["GET"]:
                self._declare(RouteDeclaration(method.upper(), template, func, name))
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

    def add_route(self, method: str, template: str, handler: Handler | HandlerRef) -> None:
        """Register a route without a decorator.

        *handler* may be a ``HandlerRef`` with hand-written parameter
        specs, which are used as given.
        """
        self._declare(RouteDeclaration(method.upper(), template, handler))

    def include(self, group: RouteGroup) -> None:
        """Register every route declared on *group*.

        A route whose full template is empty is served at ``/``.
        """
        for decl in group.declarations:
            if not decl.template:
                decl = dataclasses.replace(decl, template="/")
            self._declare(decl)

    def _declare(self, decl: RouteDeclaration) -> None:
        self._check_not_frozen()
        self._pending.append(decl)

    # -- Service injection --

    def provide(self, annotation: type, factory: Provider) -> None:
        """Register a provider factory for context injection.

        When a handler parameter's type annotation is *annotation*,
        waypost calls *factory* (with no arguments) for every request and
        injects the result::

            app.provide(OrderService, get_order_service)

            @app.get("/api/orders/{order_id}")
            def get_order(order_id: int, orders: OrderService) -> dict: ...
        """
        self._check_not_frozen()
        self._providers[annotation] = factory

    # -- Exception mappers --

    def error(self, exc_type: type[Exception]) -> Callable[[ErrorMapper], ErrorMapper]:
        """Register an exception mapper via decorator.

        The mapper runs when a handler (or a provider factory) raises
        *exc_type* or a subclass; the most specific registered class
        wins. It may take no arguments, the exception, or the request and
        the exception, and may be async. It returns a ``DomainError``, a
        ``DispatchResult``, or None to keep the generic 500::

            @app.error(PermissionError)
            def forbidden(exc: PermissionError) -> DomainError:
                return DomainError.forbidden(str(exc))

            @app.error(ValueError)
            def invalid(exc: ValueError) -> DispatchResult:
                return DispatchResult.bad_request(str(exc))
        """
        if not (isinstance(exc_type, type) and issubclass(exc_type, Exception)):
            raise ConfigurationError(f"Exception mapper target must be an Exception subclass, got {exc_type!r}")
        if issubclass(exc_type, DomainError):
            raise ConfigurationError("DomainError reaches the client as is and cannot be mapped")

        def decorator(func: ErrorMapper) -> ErrorMapper:
            self._check_not_frozen()
            self._error_mappers[exc_type] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the route table is built.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def table(self) -> RouteTable:
        """The frozen route table. Freezes the app if needed."""
        self._ensure_frozen()
        assert self._matcher is not None
        return self._matcher.table

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        assert self._matcher is not None
        assert self._binder is not None
        assert self._invoker is not None
        assert self._writer is not None

        await handle_request(
            scope,
            receive,
            send,
            matcher=self._matcher,
            binder=self._binder,
            invoker=self._invoker,
            writer=self._writer,
            config=self.config,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup, before the first HTTP request, so a
        configuration error fails startup instead of the first request.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def freeze(self) -> None:
        """Compile every declaration now.

        Raises ``ConfigurationError`` for any invalid declaration; the
        app stays unfrozen in that case.
        """
        self._ensure_frozen()

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        # 1. Route table: one registry for every route and group
        context_types = tuple(self._providers)
        registry = RouteRegistry()
        for decl in self._pending:
            ref = as_handler_ref(
                decl.handler,
                decl.template,
                context_types=context_types,
                name=decl.name,
            )
            registry.register(decl.method, decl.template, ref)
        table = registry.build()

        # 2. Per-route extractor plans (converters resolved here, not per request)
        binder = ParameterBinder.compile(
            table,
            codec=self.codec,
            providers=self._providers,
            strict_bool=self.config.strict_bool,
            max_body_size=self.config.max_body_size,
        )

        self._matcher = RequestMatcher(table)
        self._binder = binder
        self._invoker = Invoker(self.config, self._error_mappers)
        self._writer = ResponseWriter(self.codec, self.config)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Declare routes, groups, and providers before the first request."
            )
            raise RegistryFrozenError(msg)
