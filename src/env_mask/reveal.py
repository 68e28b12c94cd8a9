"""Reveal state — which lines of which documents are currently shown unmasked.

Per (document, line) a value is in one of three states:

    MASKED               default, no entry
    REVEALED_PERSISTENT  entry without a timer (reveal-all, or auto-hide off)
    REVEALED_PENDING     entry with a timer that re-masks it when it fires

Every timer token lives in its RevealEntry, and every path that removes
an entry (toggle, hide-all, reveal-all overwrite, close, clear) cancels
the timer first.  A timer left running after its entry is gone would
fire into stale state.
"""

from __future__ import annotations
import logging
from typing import Callable, Iterable

from .scheduler import Scheduler
from .types import Declaration, RevealEntry, RevealState

logger = logging.getLogger(__name__)

ExpireCallback = Callable[[str, int], None]


class RevealStateStore:
    """Document uri → {line → RevealEntry}, plus the timers those entries own."""

    __slots__ = ("_scheduler", "_documents")

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._documents: dict[str, dict[int, RevealEntry]] = {}

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def state(self, uri: str, line: int) -> RevealState:
        entry = self._documents.get(uri, {}).get(line)
        return entry.state if entry is not None else RevealState.MASKED

    def is_revealed(self, uri: str, line: int) -> bool:
        return self.state(uri, line) is not RevealState.MASKED

    def toggle(
        self,
        uri: str,
        decl: Declaration,
        *,
        delay_ms: int = 0,
        on_expire: ExpireCallback | None = None,
    ) -> RevealState:
        """Flip one line between masked and revealed.  Returns the new state.

        Revealing with ``delay_ms > 0`` schedules a timer that removes the
        entry again and then calls ``on_expire(uri, line)``.
        """
        entries = self._documents.setdefault(uri, {})
        existing = entries.pop(decl.line, None)
        if existing is not None:
            self._cancel(existing)
            logger.debug("Masked %s:%d", uri, decl.line)
            return RevealState.MASKED

        entry = RevealEntry(line=decl.line, value_start=decl.value_start, value_end=decl.value_end)
        if delay_ms > 0:
            entry.expiry = self._scheduler.schedule(
                delay_ms, lambda: self._expire(uri, entry, on_expire),
            )
        entries[decl.line] = entry
        logger.debug("Revealed %s:%d (%s)", uri, decl.line, entry.state.value)
        return entry.state

    def reveal_all(self, uri: str, decls: Iterable[Declaration]) -> int:
        """Reveal every given line persistently, replacing existing entries."""
        entries = self._documents.setdefault(uri, {})
        count = 0
        for decl in decls:
            old = entries.get(decl.line)
            if old is not None:
                self._cancel(old)
            entries[decl.line] = RevealEntry(
                line=decl.line, value_start=decl.value_start, value_end=decl.value_end,
            )
            count += 1
        return count

    def hide_all(self, uri: str) -> bool:
        """Re-mask every line of a document.  Returns False if nothing was revealed."""
        entries = self._documents.get(uri)
        if not entries:
            return False
        for entry in entries.values():
            self._cancel(entry)
        entries.clear()
        return True

    def drop(self, uri: str) -> None:
        """Forget a document entirely (it was closed)."""
        entries = self._documents.pop(uri, None)
        if entries:
            for entry in entries.values():
                self._cancel(entry)
            logger.debug("Dropped %d reveal entries for %s", len(entries), uri)

    def clear(self) -> None:
        """Cancel every timer and forget every document."""
        for uri in list(self._documents):
            self.drop(uri)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _cancel(self, entry: RevealEntry) -> None:
        if entry.expiry is not None:
            self._scheduler.cancel(entry.expiry)
            entry.expiry = None

    def _expire(self, uri: str, entry: RevealEntry, on_expire: ExpireCallback | None) -> None:
        entries = self._documents.get(uri)
        # Ignore callbacks whose entry was already replaced or removed.
        if entries is None or entries.get(entry.line) is not entry:
            return
        entry.expiry = None
        del entries[entry.line]
        logger.debug("Auto-hid %s:%d", uri, entry.line)
        if on_expire is not None:
            on_expire(uri, entry.line)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def revealed_lines(self, uri: str) -> list[int]:
        return sorted(self._documents.get(uri, {}))

    def entry(self, uri: str, line: int) -> RevealEntry | None:
        return self._documents.get(uri, {}).get(line)

    def pending_timers(self, uri: str | None = None) -> int:
        """Entries that still hold a live timer, for one document or all."""
        if uri is not None:
            maps = [self._documents.get(uri, {})]
        else:
            maps = list(self._documents.values())
        return sum(1 for entries in maps for e in entries.values() if e.expiry is not None)

    def __contains__(self, uri: object) -> bool:
        return uri in self._documents

    @property
    def documents(self) -> list[str]:
        return list(self._documents)
