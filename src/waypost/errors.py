"""Waypost exception hierarchy.

Shared across the registry, binder, invoker, and writer so every module
raises and catches the same types.

Startup errors (``ConfigurationError`` and subclasses) prevent the app
from serving traffic. Per-request errors are always turned into a
``DispatchResult`` and never reach the transport layer.
"""

import re


class WaypostError(Exception):
    """Base for all waypost-specific errors."""


# -- Startup --


class ConfigurationError(WaypostError):
    """Raised when route declarations are invalid.

    Typically raised from ``App.freeze()`` at startup: malformed templates,
    duplicate route keys, unsupported parameter types.
    """


class DuplicateRouteError(ConfigurationError):
    """A (method, template) key was registered twice."""

    def __init__(self, method: str, template: str) -> None:
        self.method = method
        self.template = template
        super().__init__(f"Duplicate route: {method} {template}")


class RegistryFrozenError(ConfigurationError):
    """A route was registered after the registry was built."""


# -- Per request --


class NoRoute(WaypostError):  # noqa: N818
    """No route accepts the method and path."""

    def __init__(self, method: str, path: str) -> None:
        self.method = method
        self.path = path
        super().__init__(f"No route matches {method} {path!r}")


class BindingError(WaypostError):
    """A handler argument could not be bound from the request."""

    def __init__(self, param: str, detail: str) -> None:
        self.param = param
        self.detail = detail
        super().__init__(detail)


class MissingParameterError(BindingError):
    """A required parameter was absent and had no default."""

    def __init__(self, param: str, source: str = "query") -> None:
        self.source = source
        super().__init__(param, f"Missing required {source} parameter: {param}")


class ParamConversionError(BindingError):
    """A raw value could not be coerced to the declared type."""

    def __init__(self, param: str, raw: object, target: str) -> None:
        self.raw = raw
        self.target = target
        super().__init__(param, f"Invalid value for parameter {param!r}: {raw!r} is not a valid {target}")


class BodyTooLargeError(BindingError):
    """The request body exceeded ``AppConfig.max_body_size``."""

    def __init__(self, param: str, limit: int) -> None:
        self.limit = limit
        super().__init__(param, f"Request body for {param!r} exceeds {limit} bytes")


# Transport statuses own the three-digit numeric codes.
_TRANSPORT_CODE = re.compile(r"\d{3}")


class DomainError(WaypostError):
    """A business-rule failure raised on purpose by a handler.

    Reaches the client with transport status 200 and ``success: false``.
    The code is symbolic (``USER_NOT_FOUND``); three-digit numeric codes
    are reserved for transport statuses and rejected.

    Usage::

        raise DomainError("USER_NOT_FOUND", "User does not exist")
        raise DomainError.resource_not_found("Order")
    """

    def __init__(self, code: str, message: str, user_tip: str | None = None) -> None:
        if not code:
            raise ValueError("DomainError requires a code")
        if _TRANSPORT_CODE.fullmatch(code):
            msg = (
                f"Domain error code {code!r} looks like an HTTP status. "
                "Use a symbolic code such as 'UNAUTHORIZED' or 'FORBIDDEN'."
            )
            raise ValueError(msg)
        self.code = code
        self.message = message
        self.user_tip = user_tip
        super().__init__(message)

    def __repr__(self) -> str:
        return f"DomainError(code={self.code!r}, message={self.message!r})"

    # -- Common codes --

    @classmethod
    def unauthorized(cls, message: str = "Authentication required") -> "DomainError":
        return cls("UNAUTHORIZED", message)

    @classmethod
    def forbidden(cls, message: str = "Permission denied") -> "DomainError":
        return cls("FORBIDDEN", message)

    @classmethod
    def resource_not_found(cls, resource: str) -> "DomainError":
        return cls("RESOURCE_NOT_FOUND", f"{resource} does not exist")

    @classmethod
    def invalid_param(cls, name: str) -> "DomainError":
        return cls("INVALID_PARAM", f"Invalid parameter: {name}")

    @classmethod
    def invalid_status(cls, current: str, expected: str) -> "DomainError":
        return cls(
            "INVALID_STATUS",
            f"Invalid status: current {current}, expected {expected}",
        )
