"""Path template compilation.

Turns ``/api/users/{user_id}/orders/{order_id}`` into an anchored regex
with one capture group per placeholder::

    ^/api/users/([^/]+)/orders/([^/]+)$   param_names=("user_id", "order_id")

Every template problem is a ``ConfigurationError`` raised here, at
startup, so a malformed template never reaches request handling.
"""

import re
from dataclasses import dataclass

from waypost.errors import ConfigurationError

# One or more characters, never crossing a path separator.
SEGMENT_PATTERN = r"([^/]+)"

_FLASK_PARAM = re.compile(r"<[A-Za-z_][^>]*>")


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """Output of ``compile_template``."""

    template: str
    regex: re.Pattern[str]
    param_names: tuple[str, ...]

    @property
    def is_static(self) -> bool:
        return not self.param_names


def _fail(template: str, reason: str) -> ConfigurationError:
    return ConfigurationError(f"Invalid route template {template!r}: {reason}")


def parse_template(template: str) -> list[str | tuple[str]]:
    """Split a template into literal strings and ``(name,)`` placeholders.

    Examples::

        "/users"          -> ["/users"]
        "/users/{id}"     -> ["/users/", ("id",)]
        "/a/{x}-{y}.json" -> ["/a/", ("x",), "-", ("y",), ".json"]
    """
    if not template.startswith("/"):
        raise _fail(template, "must start with '/'")
    if _FLASK_PARAM.search(template):
        raise _fail(template, "uses <param> syntax; write placeholders as {param}")

    parts: list[str | tuple[str]] = []
    literal: list[str] = []
    i = 0
    while i < len(template):
        char = template[i]
        if char == "}":
            raise _fail(template, f"unmatched '}}' at position {i}")
        if char != "{":
            literal.append(char)
            i += 1
            continue

        end = template.find("}", i + 1)
        if end == -1:
            raise _fail(template, f"unclosed '{{' at position {i}")
        name = template[i + 1 : end]
        if "{" in name:
            raise _fail(template, f"nested '{{' at position {i}")
        if not name.isidentifier():
            raise _fail(template, f"placeholder name {name!r} is not a valid identifier")

        if literal:
            parts.append("".join(literal))
            literal = []
        parts.append((name,))
        i = end + 1

    if literal:
        parts.append("".join(literal))
    return parts


def compile_template(template: str) -> CompiledPattern:
    """Compile a route template into an anchored matcher.

    Literal text is escaped; each ``{name}`` becomes a capture group.
    Duplicate placeholder names are rejected rather than letting one
    occurrence shadow the other.
    """
    regex_parts: list[str] = []
    names: list[str] = []
    for part in parse_template(template):
        if isinstance(part, tuple):
            name = part[0]
            if name in names:
                raise _fail(template, f"placeholder {{{name}}} appears more than once")
            names.append(name)
            regex_parts.append(SEGMENT_PATTERN)
        else:
            regex_parts.append(re.escape(part))

    regex = re.compile("^" + "".join(regex_parts) + "$")
    return CompiledPattern(template=template, regex=regex, param_names=tuple(names))
