"""File patterns — which files get masked.

Patterns are plain names unless they contain ``*`` (any run of characters)
or ``?`` (exactly one character); those are compiled once into anchored
regexes and cached until the next reload.

Enabled patterns are matched against the bare file name only.  Blacklist
patterns are also tried against the full path (forward slashes), so an
entry like ``config/staging/.env`` or ``*/fixtures/*`` can exclude files
anywhere in a tree.
"""

from __future__ import annotations
import logging
import re
from typing import Iterable

from .config import MANDATORY_FILE_PATTERN, MaskingConfig

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[/\\]")


def is_wildcard(pattern: str) -> bool:
    return "*" in pattern or "?" in pattern


def compile_glob(pattern: str) -> re.Pattern:
    """Translate ``*``/``?`` into a regex; everything else is literal."""
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.DOTALL)


def file_name(path: str) -> str:
    return _SEPARATORS.split(path)[-1]


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


class PatternCache:
    """Raw pattern string → compiled regex, for wildcard patterns only."""

    __slots__ = ("_compiled",)

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._compiled: dict[str, re.Pattern] = {}
        self.rebuild(patterns)

    def rebuild(self, patterns: Iterable[str]) -> None:
        # Built aside and swapped in whole so no lookup sees a half-built cache.
        self._compiled = {p: compile_glob(p) for p in patterns if is_wildcard(p)}

    def get(self, pattern: str) -> re.Pattern | None:
        return self._compiled.get(pattern)

    def __len__(self) -> int:
        return len(self._compiled)

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._compiled


class PatternMatcher:
    """Answers "is this file masked?" for the current configuration."""

    __slots__ = ("_enabled", "_blacklist", "_enabled_cache", "_blacklist_cache")

    def __init__(
        self,
        enabled: Iterable[str] = (MANDATORY_FILE_PATTERN,),
        blacklist: Iterable[str] = (),
    ) -> None:
        self._enabled: tuple[str, ...] = ()
        self._blacklist: tuple[str, ...] = ()
        self._enabled_cache = PatternCache()
        self._blacklist_cache = PatternCache()
        self._load(enabled, blacklist)

    @classmethod
    def from_config(cls, config: MaskingConfig) -> "PatternMatcher":
        return cls(config.enabled_file_patterns, config.blacklisted_files)

    def reload(self, config: MaskingConfig) -> None:
        """Drop every compiled pattern and rebuild from ``config``."""
        self._load(config.enabled_file_patterns, config.blacklisted_files)

    def _load(self, enabled: Iterable[str], blacklist: Iterable[str]) -> None:
        enabled = tuple(enabled)
        if MANDATORY_FILE_PATTERN not in enabled:
            enabled = enabled + (MANDATORY_FILE_PATTERN,)
        self._enabled = enabled
        self._blacklist = tuple(blacklist)
        self._enabled_cache.rebuild(self._enabled)
        self._blacklist_cache.rebuild(self._blacklist)
        logger.debug(
            "Loaded %d enabled and %d blacklist patterns",
            len(self._enabled), len(self._blacklist),
        )

    @property
    def enabled_patterns(self) -> tuple[str, ...]:
        return self._enabled

    @property
    def blacklist_patterns(self) -> tuple[str, ...]:
        return self._blacklist

    def is_enabled(self, name: str) -> bool:
        """True if the bare file name matches an enabled pattern."""
        for pattern in self._enabled:
            regex = self._enabled_cache.get(pattern)
            if regex is not None:
                if regex.fullmatch(name):
                    return True
            elif name == pattern:
                return True
        return False

    def is_blacklisted(self, path: str) -> bool:
        """True if the file name or its path matches a blacklist pattern."""
        if not path or not path.strip() or not self._blacklist:
            return False
        name = file_name(path)
        normalized = normalize_path(path)
        for pattern in self._blacklist:
            regex = self._blacklist_cache.get(pattern)
            if regex is not None:
                if regex.fullmatch(name) or regex.fullmatch(normalized):
                    return True
            else:
                literal = normalize_path(pattern)
                if name == literal or normalized == literal or normalized.endswith(literal):
                    return True
        return False

    def is_eligible(self, path: str) -> bool:
        """A file is masked iff its name is enabled and its path is not blacklisted."""
        return self.is_enabled(file_name(path)) and not self.is_blacklisted(path)
