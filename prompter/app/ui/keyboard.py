"""Keyboard command dispatch for the spotlight surface.

One application-level event filter translates key presses aimed at the
surface's window into high-level intents. The router only sees events while
it is enabled; disabling it removes the filter so another component (the
variable modal) owns the keyboard.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from PySide6.QtCore import QEvent, QObject, Qt
from PySide6.QtWidgets import QApplication, QWidget

from prompter.app import config

logger = logging.getLogger(__name__)

Handler = Callable[[], None]

_BASE_MODIFIERS = (Qt.NoModifier, Qt.KeypadModifier)


@dataclass
class KeyHandlers:
    on_up: Handler
    on_down: Handler
    on_enter: Handler
    on_escape: Handler
    on_tab: Optional[Handler] = None
    # (modifier, key) -> callback, e.g. (Qt.ControlModifier, Qt.Key_E)
    chords: dict = field(default_factory=dict)


class KeyboardRouter(QObject):
    def __init__(self, handlers: Optional[KeyHandlers] = None, enabled: bool = True, parent=None) -> None:
        super().__init__(parent)
        self._handlers = handlers
        self._enabled = enabled
        self._surface: Optional[QWidget] = None
        self._installed = False
        self._debug = config.debug_enabled("PROMPTER_DEBUG_KEYS")

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_installed(self) -> bool:
        return self._installed

    def attach(self, surface: QWidget) -> None:
        self._surface = surface
        self._sync_filter()

    def detach(self) -> None:
        self._surface = None
        self._sync_filter()

    def set_enabled(self, enabled: bool) -> None:
        if self._debug:
            logger.debug("keyboard router enabled=%s", enabled)
        self._enabled = bool(enabled)
        self._sync_filter()

    def set_handlers(self, handlers: Optional[KeyHandlers]) -> None:
        # Looked up on every key press, so the new table is live immediately.
        self._handlers = handlers

    def _sync_filter(self) -> None:
        app = QApplication.instance()
        want = self._enabled and self._surface is not None and app is not None
        if want and not self._installed:
            app.installEventFilter(self)
            self._installed = True
        elif not want and self._installed:
            if app is not None:
                app.removeEventFilter(self)
            self._installed = False

    def resolve(self, key: int, modifiers) -> Optional[Handler]:
        """Return the handler bound to a key press, or None to let it fall through."""
        handlers = self._handlers
        if handlers is None:
            return None
        for (chord_mod, chord_key), callback in handlers.chords.items():
            if key == chord_key and modifiers == chord_mod:
                return callback
        if modifiers not in _BASE_MODIFIERS:
            return None
        if key == Qt.Key_Up:
            return handlers.on_up
        if key == Qt.Key_Down:
            return handlers.on_down
        if key in (Qt.Key_Return, Qt.Key_Enter):
            return handlers.on_enter
        if key == Qt.Key_Escape:
            return handlers.on_escape
        if key == Qt.Key_Tab:
            return handlers.on_tab
        return None

    def eventFilter(self, obj, event):  # type: ignore[override]
        if not self._enabled or self._surface is None:
            return False
        if event.type() != QEvent.KeyPress or not isinstance(obj, QWidget):
            return False
        if obj.window() is not self._surface.window():
            return False
        handler = self.resolve(event.key(), event.modifiers())
        if handler is None:
            return False
        if self._debug:
            logger.debug("key %s -> %s", event.key(), getattr(handler, "__name__", handler))
        event.accept()
        handler()
        return True
