from __future__ import annotations

from typing import Any

from PySide6.QtCore import QObject, QTimer, Signal

from prompter.app.config import DEFAULT_SEARCH_DEBOUNCE_MS


class Debouncer(QObject):
    """Holds back a fast-changing value until it has been stable for ``delay_ms``.

    Every ``push`` restarts the single-shot timer, so only the last value of a
    burst is ever settled. ``cancel`` drops the pending value; the owner calls
    it on teardown.
    """

    settled = Signal(object)

    def __init__(self, value: Any = None, delay_ms: int = DEFAULT_SEARCH_DEBOUNCE_MS, parent=None) -> None:
        super().__init__(parent)
        self._value = value
        self._pending = value
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(delay_ms)))
        self._timer.timeout.connect(self._settle)

    @property
    def value(self) -> Any:
        return self._value

    @property
    def delay_ms(self) -> int:
        return self._timer.interval()

    @property
    def is_pending(self) -> bool:
        return self._timer.isActive()

    def set_delay(self, delay_ms: int) -> None:
        self._timer.setInterval(max(0, int(delay_ms)))

    def push(self, value: Any) -> None:
        self._pending = value
        self._timer.start()  # restarts if already running

    def cancel(self) -> None:
        self._timer.stop()
        self._pending = self._value

    def flush(self) -> None:
        """Settle the pending value now instead of waiting for the timer."""
        if self._timer.isActive():
            self._timer.stop()
            self._settle()

    def _settle(self) -> None:
        self._value = self._pending
        self.settled.emit(self._value)
