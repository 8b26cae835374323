"""Shared type aliases used across waypost modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# Context provider: zero-argument factory injected by annotation
Provider: TypeAlias = Callable[[], Any]

# Exception mapper: takes (), (exc) or (request, exc); returns a DomainError,
# a DispatchResult, or None to fall through to the generic 500
ErrorMapper: TypeAlias = Callable[..., Any]
