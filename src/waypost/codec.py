"""Body codecs — bytes to typed values and back.

The binder calls ``decode`` at most once per request (for the single
body parameter). The writer calls ``encode`` once per envelope.

Any object with the three members of ``BodyCodec`` can be passed as
``App(codec=...)``.
"""

import dataclasses
import datetime
import enum
import json
import uuid
from decimal import Decimal
from typing import Any, Protocol

from waypost.extraction import convert_value


class BodyCodec(Protocol):
    """Pluggable bytes <-> value converter."""

    content_type: str

    def decode(self, raw: bytes, target_type: Any) -> Any:
        """Decode *raw* into *target_type*. Raise ``ValueError`` on bad input."""
        ...

    def encode(self, value: Any) -> bytes:
        """Serialize *value*. Raise ``TypeError`` for unsupported objects."""
        ...


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Decimal):
        # str keeps the exact digits; float would round
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


class JSONCodec:
    """UTF-8 JSON with dataclass targets.

    ``bytes`` and ``str`` targets receive the raw payload undecoded, so
    a handler can take over parsing entirely.
    """

    __slots__ = ()

    content_type = "application/json; charset=utf-8"

    def decode(self, raw: bytes, target_type: Any) -> Any:
        if target_type is bytes:
            return raw
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("body is not valid UTF-8") from exc
        if target_type is str:
            return text
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"body is not valid JSON: {exc.msg}") from exc
        return convert_value(data, target_type, path="body")

    def encode(self, value: Any) -> bytes:
        return json.dumps(value, default=_json_default, ensure_ascii=False).encode("utf-8")
