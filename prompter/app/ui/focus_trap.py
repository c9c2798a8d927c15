"""Focus trap for modal overlays.

The trap's algorithm (capture the previous focus target, cycle Tab at the
boundary elements, restore on teardown) only talks to a ``FocusHost``; the
Qt widget specifics live in ``QtFocusHost``.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from shiboken6 import Shiboken
from PySide6.QtCore import QEvent, QObject, Qt, QTimer
from PySide6.QtWidgets import QApplication, QWidget

from prompter.app import config

logger = logging.getLogger(__name__)

# One display frame; initial focus and restoration wait this long so they run
# after the overlay has been shown or torn down.
FRAME_MS = 16

_TAB_POLICIES = (Qt.TabFocus, Qt.StrongFocus, Qt.WheelFocus)


class FocusHost(Protocol):
    def current_focus(self, scope: Any) -> Any: ...

    def focusable_elements(self, container: Any) -> list: ...

    def contains(self, container: Any, element: Any) -> bool: ...

    def focus(self, element: Any) -> None: ...

    def is_attached(self, element: Any) -> bool: ...


class QtFocusHost:
    """FocusHost over QWidget focus."""

    def current_focus(self, scope: QWidget) -> Optional[QWidget]:
        focused = QApplication.focusWidget()
        if focused is None and scope is not None:
            # Window not active (e.g. still being shown): fall back to the
            # window's remembered focus child.
            focused = scope.window().focusWidget()
        return focused

    def focusable_elements(self, container: QWidget) -> list[QWidget]:
        """Enabled, visible tab stops inside container, in focus-chain order."""
        elements: list[QWidget] = []
        seen: set[int] = set()
        widget = container.nextInFocusChain()
        while widget is not None and widget is not container and id(widget) not in seen and len(seen) < 10000:
            seen.add(id(widget))
            if container.isAncestorOf(widget) and self._is_tab_stop(widget, container):
                elements.append(widget)
            widget = widget.nextInFocusChain()
        return elements

    def contains(self, container: QWidget, element: Any) -> bool:
        return isinstance(element, QWidget) and (element is container or container.isAncestorOf(element))

    def focus(self, element: QWidget) -> None:
        element.setFocus(Qt.TabFocusReason)

    def is_attached(self, element: Any) -> bool:
        return (
            isinstance(element, QWidget)
            and Shiboken.isValid(element)
            and element.isVisible()
        )

    @staticmethod
    def _is_tab_stop(widget: QWidget, container: QWidget) -> bool:
        return (
            widget.isEnabled()
            and widget.isVisibleTo(container)
            and widget.focusPolicy() in _TAB_POLICIES
        )


class FocusTrap(QObject):
    """Keeps Tab/Shift+Tab inside a container while active."""

    def __init__(self, host: Optional[FocusHost] = None, parent=None) -> None:
        super().__init__(parent)
        self.host: FocusHost = host or QtFocusHost()
        self._container = None
        self._previous = None
        self._captured = False
        self._active = False
        self._debug = config.debug_enabled("PROMPTER_DEBUG_FOCUS")

        self._initial_focus_timer = QTimer(self)
        self._initial_focus_timer.setSingleShot(True)
        self._initial_focus_timer.setInterval(FRAME_MS)
        self._initial_focus_timer.timeout.connect(self._focus_initial)

        self._restore_timer = QTimer(self)
        self._restore_timer.setSingleShot(True)
        self._restore_timer.setInterval(FRAME_MS)
        self._restore_timer.timeout.connect(self._restore_previous)

    @property
    def active(self) -> bool:
        return self._active

    @property
    def previous(self):
        return self._previous

    def capture(self, scope=None) -> None:
        """Remember the current focus target. Call before anything auto-focuses."""
        self._restore_timer.stop()
        self._previous = self.host.current_focus(scope)
        self._captured = True
        if self._debug:
            logger.debug("focus trap captured %r", self._previous)

    def activate(self, container) -> None:
        if self._active:
            return
        if not self._captured:
            self.capture(container)
        self._container = container
        self._active = True
        app = QApplication.instance()
        if app is not None:
            app.installEventFilter(self)
        self._initial_focus_timer.start()

    def deactivate(self) -> None:
        """Release the trap and restore the captured focus one frame later. Runs once per activation."""
        if not self._active:
            return
        self._active = False
        self._initial_focus_timer.stop()
        app = QApplication.instance()
        if app is not None:
            app.removeEventFilter(self)
        self._container = None
        self._captured = False
        self._restore_timer.start()

    def dispose(self) -> None:
        """Drop the trap without touching focus; pending frame callbacks are cancelled."""
        self._initial_focus_timer.stop()
        self._restore_timer.stop()
        if self._active:
            app = QApplication.instance()
            if app is not None:
                app.removeEventFilter(self)
        self._active = False
        self._container = None
        self._previous = None
        self._captured = False

    def cycle(self, backwards: bool) -> bool:
        """Move focus to the next/previous focusable element, wrapping at the ends."""
        container = self._container
        if container is None:
            return False
        elements = self.host.focusable_elements(container)
        if not elements:
            return False
        current = self.host.current_focus(container)
        if current in elements:
            pos = elements.index(current)
            target = elements[(pos - 1) % len(elements)] if backwards else elements[(pos + 1) % len(elements)]
        else:
            target = elements[-1] if backwards else elements[0]
        self.host.focus(target)
        return True

    def _focus_initial(self) -> None:
        container = self._container
        if container is None:
            return
        if self.host.contains(container, self.host.current_focus(container)):
            return
        elements = self.host.focusable_elements(container)
        if elements:
            self.host.focus(elements[0])

    def _restore_previous(self) -> None:
        previous = self._previous
        self._previous = None
        if previous is not None and self.host.is_attached(previous):
            if self._debug:
                logger.debug("focus trap restoring %r", previous)
            self.host.focus(previous)

    def eventFilter(self, obj, event):  # type: ignore[override]
        if not self._active or event.type() != QEvent.KeyPress:
            return False
        if event.key() not in (Qt.Key_Tab, Qt.Key_Backtab):
            return False
        if not self.host.contains(self._container, obj):
            return False
        backwards = event.key() == Qt.Key_Backtab or bool(event.modifiers() & Qt.ShiftModifier)
        if self.cycle(backwards):
            event.accept()
            return True
        return False
