from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QByteArray, Qt, QTimer
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from prompter.app import config
from prompter.app.models import CopyPasteResult, Prompt
from prompter.services.base import PromptService
from .context_modal import ContextModal
from .results_list import ResultsList
from .spotlight_controller import SpotlightController, describe_paste_result

logger = logging.getLogger(__name__)

_STATUS_COLORS = {"success": "#2e7d32", "info": "#1565c0", "error": "#c62828"}
_HINTS = (("↑↓", "Navigate"), ("Enter", "Select"), ("Tab", "Variables"), ("Esc", "Close"))


class SearchInput(QLineEdit):
    def __init__(self, parent=None, placeholder: str = "Search prompts...") -> None:
        super().__init__(parent)
        self.setPlaceholderText(placeholder)
        self.setClearButtonEnabled(True)
        self.setCompleter(None)


class SpotlightWindow(QWidget):
    """The search surface: query field, result list and the variable modal."""

    def __init__(
        self,
        service: PromptService,
        parent=None,
        *,
        debounce_ms: Optional[int] = None,
        background: bool = True,
        show_hints: Optional[bool] = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Prompter")
        self.setWindowFlags(Qt.FramelessWindowHint | Qt.WindowStaysOnTopHint | Qt.Tool)
        self.resize(680, 420)

        # Set up geometry save timer (debounced)
        self.geometry_save_timer = QTimer(self)
        self.geometry_save_timer.setInterval(500)
        self.geometry_save_timer.setSingleShot(True)
        self.geometry_save_timer.timeout.connect(self._save_geometry)

        self.controller = SpotlightController(
            service, debounce_ms=debounce_ms, background=background, parent=self
        )

        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 10, 10, 8)
        layout.setSpacing(6)

        self.search = SearchInput(self)
        self.search.textChanged.connect(self.controller.set_query)
        layout.addWidget(self.search)

        self.stack = QStackedWidget(self)
        self.loading_label = QLabel("Loading prompts...")
        self.loading_label.setAlignment(Qt.AlignCenter)
        self.stack.addWidget(self.loading_label)

        self.error_page = QWidget()
        error_layout = QVBoxLayout(self.error_page)
        error_layout.addStretch(1)
        self.error_label = QLabel()
        self.error_label.setWordWrap(True)
        self.error_label.setAlignment(Qt.AlignCenter)
        self.error_label.setStyleSheet("color: #c62828;")
        error_layout.addWidget(self.error_label)
        self.retry_button = QPushButton("Retry")
        self.retry_button.clicked.connect(self.controller.retry)
        error_layout.addWidget(self.retry_button, 0, Qt.AlignHCenter)
        error_layout.addStretch(1)
        self.stack.addWidget(self.error_page)

        self.results = ResultsList(self)
        self.results.rowHovered.connect(self.controller.hover)
        self.results.promptActivated.connect(self._on_row_activated)
        self.stack.addWidget(self.results)

        self.empty_label = QLabel(
            "<p>No prompts found</p><p style='color:gray;'>Try a different search term</p>"
        )
        self.empty_label.setAlignment(Qt.AlignCenter)
        self.stack.addWidget(self.empty_label)
        layout.addWidget(self.stack, 1)

        self.status_label = QLabel()
        self.status_label.setWordWrap(True)
        self.status_label.hide()
        layout.addWidget(self.status_label)

        self.hints = QWidget(self)
        hints_layout = QHBoxLayout(self.hints)
        hints_layout.setContentsMargins(0, 0, 0, 0)
        for key, label in _HINTS:
            hint = QLabel(f"<b>{key}</b> {label}")
            hint.setStyleSheet("color: gray;")
            hints_layout.addWidget(hint)
        hints_layout.addStretch(1)
        layout.addWidget(self.hints)
        if show_hints is None:
            show_hints = config.load_show_keyboard_hints()
        self.hints.setVisible(show_hints)

        self.modal = ContextModal(self)
        self.modal.confirmed.connect(self.controller.confirm_modal)
        self.modal.cancelled.connect(self.controller.cancel_modal)

        self.controller.loadingChanged.connect(self._on_loading_changed)
        self.controller.loadFailed.connect(self._on_load_failed)
        self.controller.candidatesChanged.connect(self._on_candidates_changed)
        self.controller.selectionChanged.connect(self.results.set_selected_index)
        self.controller.modalRequested.connect(self.modal.open)
        self.controller.modalClosed.connect(self.modal.close_modal)
        self.controller.pasteFinished.connect(self._on_paste_finished)
        self.controller.pasteFailed.connect(self._on_paste_failed)

        self.controller.router.attach(self)
        self._restore_geometry()

    def present(self, reload: bool = True) -> None:
        """Show the surface with a fresh prompt list and the query field focused."""
        self.show()
        self.raise_()
        self.activateWindow()
        self.search.setFocus(Qt.OtherFocusReason)
        self.search.selectAll()
        if reload:
            self.controller.load()

    def _on_loading_changed(self, loading: bool) -> None:
        if loading:
            self.stack.setCurrentWidget(self.loading_label)

    def _on_load_failed(self, message: str) -> None:
        self.error_label.setText(f"Error: {message}")
        self.stack.setCurrentWidget(self.error_page)

    def _on_candidates_changed(self, candidates: list) -> None:
        self.results.set_results(candidates, self.controller.debounced_query)
        self.stack.setCurrentWidget(self.results if candidates else self.empty_label)
        self.results.set_selected_index(self.controller.selected_index)

    def _on_row_activated(self, row: int) -> None:
        candidates = self.controller.candidates
        if self.controller.is_ready and 0 <= row < len(candidates):
            self.controller.hover(row)
            self.controller.select_prompt(candidates[row])

    def _on_paste_finished(self, result: CopyPasteResult, prompt: Prompt) -> None:
        level, title, detail = describe_paste_result(result, prompt.name)
        self._show_status(level, title, detail)

    def _on_paste_failed(self, message: str) -> None:
        self._show_status("error", "Failed to paste", message)

    def _show_status(self, level: str, title: str, detail: str) -> None:
        color = _STATUS_COLORS.get(level, "gray")
        self.status_label.setText(f"<span style='color:{color};'><b>{title}</b></span> {detail}")
        self.status_label.setProperty("level", level)
        self.status_label.show()

    def _restore_geometry(self) -> None:
        """Restore saved window geometry."""
        saved_geometry = config.load_spotlight_geometry()
        if not saved_geometry:
            return
        geometry_bytes = QByteArray.fromBase64(saved_geometry.encode("ascii"))
        if not self.restoreGeometry(geometry_bytes):
            logger.debug("Saved spotlight geometry could not be restored")

    def _save_geometry(self) -> None:
        """Save current window geometry."""
        try:
            geometry_b64 = self.saveGeometry().toBase64().data().decode("ascii")
            config.save_spotlight_geometry(geometry_b64)
        except OSError as exc:
            logger.warning("Failed to save spotlight geometry: %s", exc)

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        """Handle window resize: save geometry with debounce."""
        super().resizeEvent(event)
        self.geometry_save_timer.start()

    def closeEvent(self, event) -> None:  # type: ignore[override]
        """Save geometry and tear down timers, filters and pending loads."""
        self.geometry_save_timer.stop()
        self._save_geometry()
        self.modal.close_modal()
        self.modal.dispose()
        self.controller.shutdown()
        super().closeEvent(event)
