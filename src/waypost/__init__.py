"""Waypost — request routing and dispatch for JSON APIs.

Declares (method, path template, handler) bindings, compiles them once
at startup, and runs every request through match, bind, invoke, and a
uniform JSON envelope.

Basic usage::

    from waypost import App, DomainError

    app = App()

    @app.get("/api/users/{user_id}")
    def get_user(user_id: int) -> dict:
        user = repo.find(user_id)
        if user is None:
            raise DomainError("USER_NOT_FOUND", "User does not exist")
        return user

Serve ``app`` with any ASGI 3 server.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "Body",
    "BodyCodec",
    "ConfigurationError",
    "Context",
    "DispatchResult",
    "DomainError",
    "HandlerRef",
    "JSONCodec",
    "ParamSpec",
    "Path",
    "Query",
    "Request",
    "Response",
    "ResponseHandle",
    "RouteGroup",
    "Source",
    "WaypostError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypost`` fast while providing a clean top-level API.
    """
    if name == "App":
        from waypost.app import App

        return App

    if name == "AppConfig":
        from waypost.config import AppConfig

        return AppConfig

    if name == "Request":
        from waypost.http.request import Request

        return Request

    if name in ("Response", "ResponseHandle"):
        from waypost.http import response as _resp

        return getattr(_resp, name)

    if name in ("Body", "Context", "Path", "Query", "RouteGroup"):
        from waypost import declaration as _decl

        return getattr(_decl, name)

    if name in ("ParamSpec", "Source"):
        from waypost.routing import params as _params

        return getattr(_params, name)

    if name == "DispatchResult":
        from waypost.server.invoker import DispatchResult

        return DispatchResult

    if name == "HandlerRef":
        from waypost.routing.route import HandlerRef

        return HandlerRef

    if name in ("BodyCodec", "JSONCodec"):
        from waypost import codec as _codec

        return getattr(_codec, name)

    if name in ("ConfigurationError", "DomainError", "WaypostError"):
        from waypost import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
