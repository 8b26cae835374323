"""HTTP response types.

``Response`` is what leaves the router: immutable, built through
``.with_*()`` transformations. ``ResponseHandle`` is the mutable
per-request object a handler can ask for to add headers or override the
content type before the envelope is written.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace


def validate_header(name: str, value: str) -> None:
    """Raise ``ValueError`` unless *name* and *value* can go on the wire.

    ASGI carries header bytes as latin-1; CR and LF would split the header.
    """
    if not name:
        raise ValueError("Header name must not be empty")
    for part in (name, value):
        if "\r" in part or "\n" in part:
            raise ValueError(f"Header {name!r} contains a line break")
        try:
            part.encode("latin-1")
        except UnicodeEncodeError:
            raise ValueError(f"Header {name!r} is not latin-1 encodable: {part!r}") from None


def validate_headers(headers: Iterable[tuple[str, str]]) -> None:
    for name, value in headers:
        validate_header(name, value)


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = b""
    status: int = 200
    content_type: str = "application/json; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or None."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def json(self) -> object:
        """Parse the body as JSON (test and client convenience)."""
        import json as json_module

        return json_module.loads(self.body_bytes)


@dataclass(slots=True)
class ResponseHandle:
    """Mutable response side of one request.

    Injected into handlers that declare a ``ResponseHandle`` parameter.
    The writer copies its headers onto the final response. Status is
    owned by the writer and cannot be set here. Setters raise
    ``ValueError`` for a header that cannot be sent, which the invoker
    reports as an internal error.
    """

    headers: list[tuple[str, str]] = field(default_factory=list)
    content_type: str | None = None

    def set_header(self, name: str, value: str) -> None:
        validate_header(name, value)
        self.headers = [(k, v) for k, v in self.headers if k.lower() != name.lower()]
        self.headers.append((name, value))

    def add_header(self, name: str, value: str) -> None:
        validate_header(name, value)
        self.headers.append((name, value))

    def set_content_type(self, content_type: str) -> None:
        validate_header("content-type", content_type)
        self.content_type = content_type
