"""Parameter specs and string coercion.

A ``ParamSpec`` describes where one handler argument comes from and
what type it must become. Converters are looked up once per spec when
the app freezes; requests only call the resolved function.
"""

import enum
import math
import re
import types
import typing
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from waypost.errors import ConfigurationError


class Source(enum.Enum):
    """Where a handler argument is read from."""

    PATH = "path"
    QUERY = "query"
    BODY = "body"
    CONTEXT = "context"


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Sentinel for "no default declared" (``None`` is a legitimate default)."""


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """How one handler argument is extracted and converted.

    ``name`` is the handler's keyword argument. ``key`` is the name on
    the wire (path placeholder, query key); it defaults to ``name``.
    """

    source: Source
    name: str
    target_type: Any = str
    required: bool = True
    default: Any = MISSING
    key: str | None = None

    @property
    def wire_name(self) -> str:
        return self.key or self.name

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def __str__(self) -> str:
        return f"{self.source.value}:{self.wire_name}"


# -- Coercion --

# Signed 64-bit range, the widest integer the wire contract promises.
INT_MIN = -(2**63)
INT_MAX = 2**63 - 1

_INT_LITERAL = re.compile(r"[+-]?[0-9]+")
_DECIMAL_LITERAL = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

Converter = Callable[[str], Any]


def to_str(value: str) -> str:
    return value


def to_int(value: str) -> int:
    """Base-10 integer within the signed 64-bit range.

    Raises ``ValueError`` on anything else, including ``"4_2"`` and
    surrounding whitespace that ``int()`` would accept.
    """
    if not _INT_LITERAL.fullmatch(value):
        raise ValueError(f"not a base-10 integer: {value!r}")
    result = int(value)
    if not INT_MIN <= result <= INT_MAX:
        raise ValueError(f"integer out of range: {value!r}")
    return result


def to_float(value: str) -> float:
    """Finite ASCII decimal number, same literal rules as ``to_decimal``."""
    if not _DECIMAL_LITERAL.fullmatch(value):
        raise ValueError(f"not a number: {value!r}")
    result = float(value)
    if not math.isfinite(result):
        raise ValueError(f"not a finite number: {value!r}")
    return result


def to_decimal(value: str) -> Decimal:
    if not _DECIMAL_LITERAL.fullmatch(value):
        raise ValueError(f"not a decimal: {value!r}")
    return Decimal(value)


def to_bool_strict(value: str) -> bool:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"not a boolean: {value!r}")


def to_bool_lenient(value: str) -> bool:
    """Legacy policy: ``"true"`` in any case is True, everything else False."""
    return value.lower() == "true"


CONVERTERS: dict[type, Converter] = {
    str: to_str,
    int: to_int,
    float: to_float,
    Decimal: to_decimal,
}

TYPE_LABELS: dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    Decimal: "decimal",
    bool: "boolean",
}


def unwrap_optional(target_type: Any) -> Any:
    """``int | None`` and ``Optional[int]`` -> ``int``. Other types pass through."""
    origin = typing.get_origin(target_type)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(target_type) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return target_type


def type_label(target_type: Any) -> str:
    target = unwrap_optional(target_type)
    return TYPE_LABELS.get(target, getattr(target, "__name__", str(target)))


def resolve_converter(target_type: Any, *, strict_bool: bool = True) -> Converter:
    """Return the string converter for *target_type*.

    Raises ``ConfigurationError`` for types that cannot be read from a
    path segment or query value.
    """
    target = unwrap_optional(target_type)
    if target is bool:
        return to_bool_strict if strict_bool else to_bool_lenient
    if target is Any:
        return to_str
    try:
        return CONVERTERS[target]
    except (KeyError, TypeError):
        supported = ", ".join(sorted(TYPE_LABELS.values()))
        msg = f"Unsupported parameter type {target_type!r}. Supported: {supported}."
        raise ConfigurationError(msg) from None
