"""Core types."""

from __future__ import annotations
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

# Only real line breaks; str.splitlines also splits on \f, \v, \x1c-\x1e and \u2028.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True, slots=True)
class Declaration:
    """A parsed KEY=value pair with its column spans in one line."""
    line: int
    key: str
    value: str
    key_start: int
    key_end: int
    value_start: int
    value_end: int

    def contains(self, character: int) -> bool:
        """True if the column falls inside the value span (both ends inclusive)."""
        return self.value_start <= character <= self.value_end


class RevealState(str, Enum):
    MASKED = "masked"
    REVEALED_PERSISTENT = "revealed_persistent"
    REVEALED_PENDING = "revealed_pending"


@dataclass(slots=True)
class RevealEntry:
    """A revealed line.  ``expiry`` is the scheduler token of its auto-hide timer."""
    line: int
    value_start: int
    value_end: int
    expiry: Any = None

    @property
    def state(self) -> RevealState:
        if self.expiry is None:
            return RevealState.REVEALED_PERSISTENT
        return RevealState.REVEALED_PENDING


class Position(NamedTuple):
    line: int
    character: int


@dataclass(slots=True)
class TextDocument:
    """An open document as the host sees it.

    ``uri`` identifies the document; it defaults to ``path``.  Content is
    read on demand through ``lines`` and never cached by the engine.
    """
    path: str
    text: str = ""
    uri: str = ""

    def __post_init__(self) -> None:
        if not self.uri:
            self.uri = self.path

    @property
    def lines(self) -> list[str]:
        lines = _LINE_BREAK.split(self.text)
        if lines[-1] == "":
            lines.pop()
        return lines

    @classmethod
    def from_file(cls, path: str) -> "TextDocument":
        # utf-8-sig drops a leading byte-order mark
        with open(path, encoding="utf-8-sig") as f:
            return cls(path=path, text=f.read())


class RenderMode(str, Enum):
    MASKED = "masked"
    REVEALED = "revealed"


@dataclass(frozen=True, slots=True)
class RenderInstruction:
    """One overlay: a value span plus how to draw it."""
    line: int
    start: int
    end: int
    mode: RenderMode
    text: str | None = None   # substitute text, masked spans only


@dataclass(frozen=True, slots=True)
class RenderBatch:
    """Everything the host needs to redraw one document."""
    uri: str
    masked: tuple[RenderInstruction, ...] = ()
    revealed: tuple[RenderInstruction, ...] = ()

    @property
    def instructions(self) -> list[RenderInstruction]:
        return sorted(self.masked + self.revealed, key=lambda i: (i.line, i.start))

    @property
    def is_empty(self) -> bool:
        return not self.masked and not self.revealed


@dataclass(frozen=True, slots=True)
class Notification:
    """User-facing message.  ``level`` is "info", "warning" or "error"."""
    level: str
    message: str
