"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, strict_bool=False)
    """

    debug: bool = False

    # Binding
    strict_bool: bool = True  # False: only "true" is True, anything else False
    max_body_size: int = 16 * 1024 * 1024  # 16 MB

    # Invocation: run sync handlers in a worker thread
    offload_sync_handlers: bool = True

    # Envelope messages for transport-level failures
    not_found_message: str = "Endpoint does not exist"
    internal_error_message: str = "Internal server error, please try again later"
