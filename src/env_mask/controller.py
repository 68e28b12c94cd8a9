"""Masking controller — turns host triggers into render batches.

The host wires its editor events to the ``on_*`` methods and draws
whatever RenderBatch comes out of ``subscribe``.  The default scheduler
uses the running asyncio loop, so build the controller inside one or
pass ``scheduler=AsyncioScheduler(loop)`` (or a ManualScheduler):

    controller = MaskingController(
        Settings(YamlConfigStore(path)), scheduler=AsyncioScheduler(loop))
    controller.subscribe(draw_overlays)
    controller.subscribe_notifications(show_message)

    controller.on_open(doc)
    controller.on_selection_change(doc, Position(3, 12))  # click → toggle
    controller.reveal_all(doc)
    ...
    controller.dispose()

Rendering is a pure function of (current text, reveal state, config), so
re-rendering after any trigger converges on the same picture no matter
in which order triggers arrived.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Optional

from .config import ConfigStoreError, Settings
from .mask import generate_mask
from .parser import parse_document, value_at_position
from .patterns import PatternMatcher
from .reveal import RevealStateStore
from .scheduler import AsyncioScheduler, Scheduler
from .types import (
    Notification,
    Position,
    RenderBatch,
    RenderInstruction,
    RenderMode,
    RevealState,
    TextDocument,
)

logger = logging.getLogger(__name__)

RenderListener = Callable[[RenderBatch], None]
NotificationListener = Callable[[Notification], None]


class MaskingController:
    """Orchestrates parsing, reveal state and mask generation per document."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        matcher: PatternMatcher | None = None,
        scheduler: Scheduler | None = None,
        store: RevealStateStore | None = None,
    ) -> None:
        """Without ``scheduler``, timers go to the asyncio loop running when
        this is called; outside a running loop that raises RuntimeError.
        """
        self.settings = settings or Settings()
        self.matcher = matcher or PatternMatcher.from_config(self.settings.config)
        if scheduler is None:
            scheduler = AsyncioScheduler(_running_loop())
        self.scheduler = scheduler
        self.store = store or RevealStateStore(self.scheduler)
        self._enabled = True
        self._documents: dict[str, TextDocument] = {}   # visible documents by uri
        self._active: Optional[str] = None
        self._render_listeners: list[RenderListener] = []
        self._notification_listeners: list[NotificationListener] = []

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: RenderListener) -> Callable[[], None]:
        """Receive every RenderBatch.  Returns an unsubscribe function."""
        self._render_listeners.append(listener)
        return lambda: _discard(self._render_listeners, listener)

    def subscribe_notifications(self, listener: NotificationListener) -> Callable[[], None]:
        self._notification_listeners.append(listener)
        return lambda: _discard(self._notification_listeners, listener)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def active_document(self) -> TextDocument | None:
        return self._documents.get(self._active) if self._active else None

    def is_eligible(self, doc: TextDocument) -> bool:
        return self.matcher.is_eligible(doc.path)

    def render(self, doc: TextDocument) -> RenderBatch:
        """Compute the overlays for a document from its current text."""
        if not self._enabled or not self.is_eligible(doc):
            return RenderBatch(doc.uri)

        config = self.settings.config
        masked: list[RenderInstruction] = []
        revealed: list[RenderInstruction] = []
        for decl in parse_document(doc.lines):
            if self.store.state(doc.uri, decl.line) is RevealState.MASKED:
                masked.append(RenderInstruction(
                    line=decl.line,
                    start=decl.value_start,
                    end=decl.value_end,
                    mode=RenderMode.MASKED,
                    text=generate_mask(len(decl.value), config),
                ))
            else:
                revealed.append(RenderInstruction(
                    line=decl.line,
                    start=decl.value_start,
                    end=decl.value_end,
                    mode=RenderMode.REVEALED,
                ))
        return RenderBatch(doc.uri, tuple(masked), tuple(revealed))

    def refresh_all(self) -> None:
        """Re-render every visible document."""
        for doc in list(self._documents.values()):
            self._publish(self.render(doc))

    def _refresh(self, doc: TextDocument) -> None:
        self._publish(self.render(doc))

    def _publish(self, batch: RenderBatch) -> None:
        for listener in list(self._render_listeners):
            listener(batch)

    def _notify(self, level: str, message: str) -> None:
        log = {"info": logger.info, "warning": logger.warning}.get(level, logger.error)
        log(message)
        note = Notification(level, message)
        for listener in list(self._notification_listeners):
            listener(note)

    # ------------------------------------------------------------------
    # Host triggers
    # ------------------------------------------------------------------

    def on_open(self, doc: TextDocument) -> None:
        self._documents[doc.uri] = doc
        if self.is_eligible(doc):
            self._refresh(doc)

    def on_active_change(self, doc: TextDocument | None) -> None:
        if doc is None:
            self._active = None
            return
        self._active = doc.uri
        self.on_open(doc)

    def on_change(self, doc: TextDocument) -> None:
        """The document's text was edited."""
        self._documents[doc.uri] = doc
        if self.is_eligible(doc):
            self._refresh(doc)

    def on_close(self, doc: TextDocument) -> None:
        self.store.drop(doc.uri)
        self._documents.pop(doc.uri, None)
        if self._active == doc.uri:
            self._active = None

    def on_selection_change(self, doc: TextDocument, position: Position) -> None:
        """A caret-only selection moved; treat it as a click."""
        if not self._enabled or not self.is_eligible(doc):
            return
        self._documents[doc.uri] = doc
        decl = value_at_position(doc.lines, position)
        if decl is not None:
            self.store.toggle(
                doc.uri,
                decl,
                delay_ms=self.settings.config.auto_hide_delay_ms,
                on_expire=self._on_expire,
            )
            self._refresh(doc)
        elif self.store.hide_all(doc.uri):
            self._refresh(doc)

    def on_config_changed(self) -> None:
        config = self.settings.reload()
        self.matcher.reload(config)
        self.refresh_all()

    def _on_expire(self, uri: str, line: int) -> None:
        doc = self._documents.get(uri)
        if doc is not None:
            self._refresh(doc)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def toggle_masking(self) -> bool:
        """Flip the global gate.  Reveal state is kept either way."""
        self._enabled = not self._enabled
        self.refresh_all()
        if self._enabled:
            self._notify("info", "Environment file masking enabled")
        else:
            self._notify("info", "Environment file masking disabled")
        return self._enabled

    def reveal_all(self, doc: TextDocument | None = None) -> bool:
        doc = doc or self.active_document
        if doc is None or not self.is_eligible(doc):
            self._notify("warning", "No active environment file to reveal values for")
            return False
        self._documents[doc.uri] = doc
        self.store.reveal_all(doc.uri, parse_document(doc.lines))
        self._refresh(doc)
        self._notify("info", "All values revealed")
        return True

    def mask_all(self, doc: TextDocument | None = None) -> bool:
        doc = doc or self.active_document
        if doc is None or not self.is_eligible(doc):
            self._notify("warning", "No active environment file to mask values for")
            return False
        self._documents[doc.uri] = doc
        if self.store.hide_all(doc.uri):
            self._refresh(doc)
        self._notify("info", "All values masked")
        return True

    def update_setting(self, key: str, value: Any) -> bool:
        """Persist a setting and apply it.  Store failures are reported, not raised."""
        try:
            self.settings.update_setting(key, value)
        except ConfigStoreError as e:
            logger.error("Failed to update setting %s: %s", key, e)
            self._notify("error", f"Failed to update setting: {key}")
            return False
        self.on_config_changed()
        return True

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Cancel every outstanding timer and drop all state."""
        self.store.clear()
        self._documents.clear()
        self._active = None
        self._render_listeners.clear()
        self._notification_listeners.clear()

    def __enter__(self) -> "MaskingController":
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()


def _discard(listeners: list, listener: Any) -> None:
    if listener in listeners:
        listeners.remove(listener)


def _running_loop():
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        raise RuntimeError(
            "MaskingController needs a running asyncio loop for auto-hide "
            "timers; pass scheduler=AsyncioScheduler(loop) or a ManualScheduler"
        ) from None
