"""Typed extraction of decoded body data into dataclasses.

Populates dataclass instances from a parsed JSON object, converting
values to the annotated field types. Used by ``JSONCodec`` when a body
parameter is annotated with a dataclass.

Rules:

- Keys not declared as fields are ignored.
- Missing keys use the field default; a missing key without a default
  is an error.
- Strings are accepted for numeric, decimal, and boolean fields and go
  through the same converters as query parameters.
- Nested dataclasses and ``list[SomeDataclass]`` are extracted
  recursively.

Every failure is a ``ValueError`` naming the offending field.
"""

from __future__ import annotations

import dataclasses
import typing
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, TypeVar

from waypost.routing.params import (
    to_bool_strict,
    to_decimal,
    to_float,
    to_int,
    unwrap_optional,
)


def is_extractable_dataclass(annotation: Any) -> bool:
    """Return True if *annotation* is a user-defined dataclass type.

    Excludes waypost's own dataclass types (``Request``, ``Response``, etc.)
    which should never be built from body data.
    """
    if not isinstance(annotation, type) or not dataclasses.is_dataclass(annotation):
        return False

    module = getattr(annotation, "__module__", "") or ""
    return not module.startswith("waypost.")


T = TypeVar("T")


def extract_dataclass(cls: type[T], data: Any, *, path: str = "") -> T:
    """Create a dataclass instance from a decoded JSON object.

    Args:
        cls: A dataclass type to instantiate.
        data: The decoded value; must be a JSON object.
        path: Dotted location used in error messages for nested values.

    Returns:
        A new instance of *cls* populated from *data*.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"{path or cls.__name__}: expected an object, got {type(data).__name__}")

    hints = typing.get_type_hints(cls)
    kwargs: dict[str, Any] = {}

    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        where = f"{path}.{f.name}" if path else f.name
        if f.name not in data:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                raise ValueError(f"{where}: required field is missing")
            continue
        kwargs[f.name] = convert_value(data[f.name], hints.get(f.name, Any), path=where)

    return cls(**kwargs)


def convert_value(value: Any, target_type: Any, *, path: str = "value") -> Any:
    """Convert one decoded JSON value to *target_type*."""
    if value is None:
        return None

    target = unwrap_optional(target_type)

    if target is Any or target is object:
        return value

    if is_extractable_dataclass(target):
        return extract_dataclass(target, value, path=path)

    origin = typing.get_origin(target)
    if origin in (list, tuple, set, frozenset):
        if not isinstance(value, list):
            raise ValueError(f"{path}: expected a list, got {type(value).__name__}")
        args = typing.get_args(target)
        item_type = args[0] if args else Any
        items = [convert_value(v, item_type, path=f"{path}[{i}]") for i, v in enumerate(value)]
        return origin(items)
    if origin is dict or target is dict:
        if not isinstance(value, dict):
            raise ValueError(f"{path}: expected an object, got {type(value).__name__}")
        return value
    if target is list:
        if not isinstance(value, list):
            raise ValueError(f"{path}: expected a list, got {type(value).__name__}")
        return value

    try:
        return _convert_scalar(value, target)
    except ValueError as exc:
        raise ValueError(f"{path}: {exc}") from exc


def _convert_scalar(value: Any, target: Any) -> Any:
    if target is str:
        if not isinstance(value, str):
            raise ValueError(f"expected a string, got {type(value).__name__}")
        return value

    if target is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return to_bool_strict(value)
        raise ValueError(f"expected a boolean, got {type(value).__name__}")

    # bool is an int subclass; never let true/false pass as numbers
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")

    if target is int:
        if isinstance(value, int):
            return to_int(str(value))
        if isinstance(value, float) and value.is_integer():
            return to_int(str(int(value)))
        if isinstance(value, str):
            return to_int(value)
        raise ValueError(f"expected an integer, got {value!r}")

    if target is float:
        if isinstance(value, (int, float)):
            return to_float(str(value))
        if isinstance(value, str):
            return to_float(value)
        raise ValueError(f"expected a number, got {value!r}")

    if target is Decimal:
        if isinstance(value, (int, float, str, Decimal)):
            return to_decimal(str(value))
        raise ValueError(f"expected a decimal, got {value!r}")

    # Unknown type: keep the decoded value
    return value
