"""Statement/argument splitting and token helpers for the physical file encoding.

Everything here is pure text handling: no entity lookups, no geometry. The
splitters track two pieces of state while scanning, a string-literal flag
(toggled on ``'``; a doubled ``''`` inside a literal is an escaped quote) and
a parenthesis depth, so separators inside literals or nested lists are never
honoured.
"""

from __future__ import annotations

import math
import re

NULL_TOKENS: frozenset[str] = frozenset({"$", "*"})

_REFERENCE_RE = re.compile(r"^#(\d+)$")


def _scan(text: str, separator: str) -> list[str]:
    """Split ``text`` on ``separator`` at depth zero, outside string literals."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    in_string = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch == "'":
            if in_string and i + 1 < n and text[i + 1] == "'":
                current.append("''")
                i += 2
                continue
            in_string = not in_string
            current.append(ch)
            i += 1
            continue

        if not in_string:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            elif ch == separator and depth == 0:
                parts.append("".join(current).strip())
                current = []
                i += 1
                continue

        current.append(ch)
        i += 1

    trailing = "".join(current).strip()
    if trailing:
        parts.append(trailing)
    return parts


def split_statements(data_section: str) -> list[str]:
    """Split a DATA section into ``;``-terminated statements.

    Empty statements are dropped; an unterminated trailing statement is kept.
    """
    return [s for s in _scan(data_section, ";") if s]


def split_top_level(value: str) -> list[str]:
    """Split an argument list body into its top-level comma-separated tokens.

    ``"#1,(#2,#3),'a,b'"`` yields ``["#1", "(#2,#3)", "'a,b'"]``.
    """
    return _scan(value, ",")


def is_null(token: str | None) -> bool:
    """Return True for the "no value" (``$``) and derived (``*``) placeholders."""
    return token is None or token.strip() in NULL_TOKENS


def parse_reference(token: str | None) -> int | None:
    """Parse ``#<digits>`` into an entity id; anything else is absent."""
    if token is None:
        return None
    match = _REFERENCE_RE.match(token.strip())
    return int(match.group(1)) if match else None


def parse_reference_list(token: str | None) -> list[int]:
    """Parse ``(#a,#b,...)`` into ids, silently dropping unparseable entries."""
    inner = _list_body(token)
    if inner is None:
        return []
    refs = (parse_reference(item) for item in split_top_level(inner))
    return [ref for ref in refs if ref is not None]


def unquote(token: str | None, fallback: str = "") -> str:
    """Decode a string literal, collapsing doubled quotes.

    ``$``, ``*`` and empty tokens decode to ``fallback``; a token that is not
    a literal is returned stripped.
    """
    if token is None:
        return fallback
    trimmed = token.strip()
    if not trimmed or trimmed in NULL_TOKENS:
        return fallback
    if len(trimmed) >= 2 and trimmed.startswith("'") and trimmed.endswith("'"):
        return trimmed[1:-1].replace("''", "'")
    return trimmed


def quote(text: str) -> str:
    """Encode ``text`` as a string literal (inverse of :func:`unquote`)."""
    return "'" + text.replace("'", "''") + "'"


def parse_enum(token: str | None) -> str | None:
    """Parse an enumeration token such as ``.T.`` or ``.AREA.``."""
    if token is None:
        return None
    trimmed = token.strip()
    if len(trimmed) >= 2 and trimmed.startswith(".") and trimmed.endswith("."):
        return trimmed[1:-1].upper()
    return None


def parse_float(token: str | None) -> float | None:
    """Parse a numeric token (``1.``, ``-2.5E-3``, ``4``); non-numbers are absent."""
    if token is None:
        return None
    trimmed = token.strip()
    if not trimmed or trimmed in NULL_TOKENS:
        return None
    try:
        value = float(trimmed)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_float_tuple(token: str | None) -> tuple[float, ...] | None:
    """Parse ``(x,y[,z])`` into floats; absent if any component is not numeric."""
    inner = _list_body(token)
    if inner is None:
        return None
    values = [parse_float(item) for item in split_top_level(inner)]
    if not values or any(v is None for v in values):
        return None
    return tuple(values)  # type: ignore[arg-type]


def parse_float_tuples(token: str | None) -> list[tuple[float, ...]]:
    """Parse ``((x,y,z),(x,y,z),...)``; malformed tuples are dropped."""
    inner = _list_body(token)
    if inner is None:
        return []
    tuples = (parse_float_tuple(item) for item in split_top_level(inner))
    return [t for t in tuples if t is not None]


def parse_int_tuple(token: str | None) -> tuple[int, ...] | None:
    """Parse ``(1,2,3)`` into ints; absent if any component is not an integer."""
    inner = _list_body(token)
    if inner is None:
        return None
    values: list[int] = []
    for item in split_top_level(inner):
        try:
            values.append(int(item))
        except ValueError:
            return None
    return tuple(values) if values else None


def parse_int_tuples(token: str | None) -> list[tuple[int, ...]]:
    """Parse ``((1,2,3),(2,3,4),...)``; malformed tuples are dropped."""
    inner = _list_body(token)
    if inner is None:
        return []
    tuples = (parse_int_tuple(item) for item in split_top_level(inner))
    return [t for t in tuples if t is not None]


def format_real(value: float, precision: int = 6) -> str:
    """Format a float the way the encoding writes reals: ``1.``, ``0.25``, ``-3.5``."""
    if not math.isfinite(value):
        return "0."
    text = f"{value:.{precision}f}".rstrip("0")
    if text == "-0.":
        return "0."
    return text


def _list_body(token: str | None) -> str | None:
    """Return the text between the outer parentheses of a list token."""
    if token is None:
        return None
    trimmed = token.strip()
    if len(trimmed) < 2 or not (trimmed.startswith("(") and trimmed.endswith(")")):
        return None
    return trimmed[1:-1]
