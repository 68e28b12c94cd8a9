"""Line parser — finds KEY=value declarations and their exact column spans.

Only plain ``KEY=value`` lines count.  Comments (``#``, ``//``), blank
lines, ``export`` declarations and keys that are not identifiers are
rejected silently; most lines in a config file are not declarations.

Spans are computed from the original, untrimmed line, so they stay valid
whatever leading or inner whitespace the line carries:

    "  API_KEY = secret  "
       ^      ^ ^      ^
       |      | |      value_end (trailing whitespace excluded)
       |      | value_start (right after "=", so value is " secret")
       |      key_end
       key_start

Nothing is cached: callers reparse on every trigger because the text
may have changed in between.
"""

from __future__ import annotations
import re
from typing import Sequence

from .types import Declaration, Position

_KEY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
# Whitespace plus a byte-order mark, which str.strip() leaves alone
_LEADING = re.compile(r"[\s\ufeff]*")
_TRAILING = re.compile(r"[\s\ufeff]*\Z")
_COMMENT_PREFIXES = ("#", "//")
_EXPORT_PREFIX = "export "


def is_valid_key(key: str) -> bool:
    return _KEY_RE.fullmatch(key) is not None


def parse_line(text: str, line: int) -> Declaration | None:
    """Parse one line.  Returns None when it is not a declaration."""
    lead = _LEADING.match(text).end()
    rest = text[lead:]
    stripped = rest[:_TRAILING.search(rest).start()]
    if not stripped or stripped.startswith(_COMMENT_PREFIXES):
        return None
    if stripped.startswith(_EXPORT_PREFIX):
        return None

    eq = stripped.find("=")
    if eq == -1:
        return None

    raw_key = stripped[:eq]
    key = raw_key.strip()
    value = stripped[eq + 1:]
    if not is_valid_key(key) or not value:
        return None

    # The leading run never contains "=", so offsets shift by a constant.
    key_start = lead
    value_start = lead + eq + 1

    return Declaration(
        line=line,
        key=key,
        value=value,
        key_start=key_start,
        key_end=key_start + len(key),
        value_start=value_start,
        value_end=value_start + len(value),
    )


def parse_document(lines: Sequence[str]) -> list[Declaration]:
    """Parse every line, in order."""
    out: list[Declaration] = []
    for i, text in enumerate(lines):
        decl = parse_line(text, i)
        if decl is not None:
            out.append(decl)
    return out


def value_at_position(lines: Sequence[str], position: Position) -> Declaration | None:
    """Return the declaration whose value span contains the position, if any."""
    if not 0 <= position.line < len(lines):
        return None
    decl = parse_line(lines[position.line], position.line)
    if decl is not None and decl.contains(position.character):
        return decl
    return None


def declarations_in_range(
    lines: Sequence[str], start_line: int, end_line: int,
) -> list[Declaration]:
    """Declarations on lines ``start_line..end_line`` (inclusive)."""
    return [d for d in parse_document(lines) if start_line <= d.line <= end_line]
