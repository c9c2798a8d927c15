"""Overlay that collects values for a prompt's ``{{variables}}``."""
from __future__ import annotations

import html
import logging
from typing import Optional

from PySide6.QtCore import QEvent, Qt, Signal
from PySide6.QtWidgets import (
    QAbstractButton,
    QFormLayout,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from prompter.app.models import Prompt
from prompter.app.variables import can_confirm, initial_values
from .focus_trap import FocusTrap

logger = logging.getLogger(__name__)


class _ModalCard(QFrame):
    """Content box of the modal. Consumes its own clicks and Escape/Enter."""

    submitRequested = Signal()
    cancelRequested = Signal()

    def mousePressEvent(self, event):  # type: ignore[override]
        # Never let a click inside the card reach the overlay's cancel handler.
        event.accept()

    def mouseReleaseEvent(self, event):  # type: ignore[override]
        event.accept()

    def keyPressEvent(self, event):  # type: ignore[override]
        if event.key() == Qt.Key_Escape:
            event.accept()
            self.cancelRequested.emit()
            return
        if event.key() in (Qt.Key_Return, Qt.Key_Enter):
            event.accept()
            focused = self.focusWidget()
            if isinstance(focused, QAbstractButton):
                if focused.isEnabled():
                    focused.click()
                return
            self.submitRequested.emit()
            return
        super().keyPressEvent(event)


class ContextModal(QWidget):
    """Variable form shown on top of the spotlight window.

    Opening captures the focused widget before anything else happens, then
    traps Tab inside the card. Every way out (confirm, cancel button, click on
    the dimmed overlay, Escape) goes through ``close_modal``, which releases
    the trap exactly once.
    """

    confirmed = Signal(dict)
    cancelled = Signal()
    opened = Signal(object)
    closed = Signal()

    def __init__(self, parent: QWidget) -> None:
        super().__init__(parent)
        self.setObjectName("ContextModalOverlay")
        self.setAttribute(Qt.WA_StyledBackground, True)
        self.setStyleSheet(
            "#ContextModalOverlay { background: rgba(0, 0, 0, 120); }"
            "#ContextModalCard { background: palette(window); border-radius: 8px; }"
        )
        self._prompt: Optional[Prompt] = None
        self._values: dict[str, str] = {}
        self._open = False
        self.inputs: list[QLineEdit] = []
        self.labels: list[QLabel] = []

        self.trap = FocusTrap(parent=self)

        outer = QVBoxLayout(self)
        outer.setContentsMargins(24, 24, 24, 24)
        outer.addStretch(1)

        self.card = _ModalCard(self)
        self.card.setObjectName("ContextModalCard")
        self.card.setAttribute(Qt.WA_StyledBackground, True)
        self.card.setMaximumWidth(520)
        self.card.submitRequested.connect(self.submit)
        self.card.cancelRequested.connect(self.cancel)
        outer.addWidget(self.card, 0, Qt.AlignHCenter)
        outer.addStretch(1)

        layout = QVBoxLayout(self.card)
        layout.setContentsMargins(16, 14, 16, 14)
        layout.setSpacing(10)

        self.title = QLabel()
        self.title.setWordWrap(True)
        self.title.setStyleSheet("font-weight: bold;")
        layout.addWidget(self.title)

        self._fields_host = QWidget(self.card)
        self._form = QFormLayout(self._fields_host)
        self._form.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._fields_host)

        actions = QHBoxLayout()
        actions.addStretch(1)
        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.setAutoDefault(False)
        self.cancel_button.clicked.connect(self.cancel)
        actions.addWidget(self.cancel_button)
        self.confirm_button = QPushButton("Use Prompt")
        self.confirm_button.setAutoDefault(False)
        self.confirm_button.clicked.connect(self.submit)
        actions.addWidget(self.confirm_button)
        layout.addLayout(actions)

        parent.installEventFilter(self)
        self.hide()

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def prompt(self) -> Optional[Prompt]:
        return self._prompt

    def values(self) -> dict[str, str]:
        return dict(self._values)

    def can_confirm(self) -> bool:
        """Shared by the button state and the Enter path so both always agree."""
        if not self._open or self._prompt is None:
            return False
        return can_confirm(self._prompt.variables, self._values)

    def open(self, prompt: Prompt) -> None:
        if self._open:
            self.close_modal()
        # Capture before any widget below grabs focus.
        self.trap.capture(self.parentWidget())
        self._prompt = prompt
        self._values = initial_values(prompt.variables)
        self.title.setText(f'Fill in variables for "{prompt.name}"')
        self._build_fields()
        self._open = True
        self.setGeometry(self.parentWidget().rect())
        self.show()
        self.raise_()
        if self.inputs:
            self.inputs[0].setFocus(Qt.OtherFocusReason)
        self.trap.activate(self.card)
        self._update_confirm_state()
        logger.debug("context modal opened for %s", prompt.id)
        self.opened.emit(prompt)

    def set_value(self, name: str, value: str) -> None:
        for line_edit in self.inputs:
            if line_edit.property("variableName") == name:
                line_edit.setText(value)
                return
        raise KeyError(name)

    def submit(self) -> bool:
        """Confirm with the current values. Silently ignored while a required value is empty."""
        if not self.can_confirm():
            return False
        values = dict(self._values)
        self.confirmed.emit(values)
        self.close_modal()
        return True

    def cancel(self) -> None:
        if not self._open:
            return
        self.close_modal()
        self.cancelled.emit()

    def close_modal(self) -> None:
        if not self._open:
            return
        self._open = False
        self.hide()
        self.trap.deactivate()
        self._clear_fields()
        self._values = {}
        self._prompt = None
        self.closed.emit()

    def dispose(self) -> None:
        self.trap.dispose()

    def _build_fields(self) -> None:
        self._clear_fields()
        for variable in self._prompt.variables if self._prompt else ():
            marker = " <span style='color:#e53935;'>*</span>" if variable.required else ""
            label = QLabel(f"{html.escape(variable.name)}{marker}")
            label.setTextFormat(Qt.RichText)
            label.setProperty("required", variable.required)
            line_edit = QLineEdit()
            line_edit.setProperty("variableName", variable.name)
            line_edit.setText(self._values.get(variable.name, ""))
            line_edit.setPlaceholderText(variable.default or f"Enter {variable.name}")
            if variable.description:
                line_edit.setToolTip(variable.description)
                label.setToolTip(variable.description)
            line_edit.textChanged.connect(
                lambda text, name=variable.name: self._on_value_changed(name, text)
            )
            self._form.addRow(label, line_edit)
            self.labels.append(label)
            self.inputs.append(line_edit)
        # Fields are created after the buttons; put them first in tab order.
        chain = [*self.inputs, self.cancel_button, self.confirm_button]
        for first, second in zip(chain, chain[1:]):
            QWidget.setTabOrder(first, second)

    def _clear_fields(self) -> None:
        # takeRow + deleteLater: the row may own the widget whose key event
        # is still being delivered.
        while self._form.rowCount():
            row = self._form.takeRow(0)
            for item in (row.labelItem, row.fieldItem):
                widget = item.widget() if item is not None else None
                if widget is not None:
                    widget.hide()
                    widget.deleteLater()
        self.inputs = []
        self.labels = []

    def _on_value_changed(self, name: str, text: str) -> None:
        if not self._open:
            return
        self._values[name] = text
        self._update_confirm_state()

    def _update_confirm_state(self) -> None:
        self.confirm_button.setEnabled(self.can_confirm())

    def mousePressEvent(self, event):  # type: ignore[override]
        # Presses inside the card are consumed by it; anything here is outside.
        if not self.card.geometry().contains(event.position().toPoint()):
            event.accept()
            self.cancel()
            return
        super().mousePressEvent(event)

    def keyPressEvent(self, event):  # type: ignore[override]
        if event.key() == Qt.Key_Escape:
            event.accept()
            self.cancel()
            return
        super().keyPressEvent(event)

    def eventFilter(self, obj, event):  # type: ignore[override]
        if obj is self.parentWidget() and event.type() == QEvent.Resize and self._open:
            self.setGeometry(obj.rect())
        return super().eventFilter(obj, event)
