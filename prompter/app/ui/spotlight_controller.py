"""State and behaviour of the spotlight search surface.

The controller owns the query, the candidate list, the active row and the
variable modal's visibility. Widgets only forward user input to it and render
what its signals report.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

from PySide6.QtCore import QObject, Qt, Signal

from prompter.app import config
from prompter.app.models import CopyPasteResult, Prompt, SpotlightState
from prompter.app.search import PromptSearch
from prompter.app.variables import substitute_variables
from prompter.services.base import PromptService, PromptServiceError
from .debounce import Debouncer
from .keyboard import KeyboardRouter, KeyHandlers
from .selection import DOWN, UP, SelectionModel

logger = logging.getLogger(__name__)


def describe_paste_result(result: CopyPasteResult, prompt_name: str) -> tuple[str, str, str]:
    """Map a paste outcome to (level, title, detail) for the status line."""
    if not result.clipboard_success:
        return "error", "Copy failed", result.message
    if result.paste_likely_success:
        return "success", result.message, f'"{prompt_name}" is ready to use'
    if result.paste_attempted:
        return "info", result.message, f'"{prompt_name}" - press Ctrl+V if needed'
    return "success", result.message, f'"{prompt_name}" is ready to use'


class _PromptLoader(QObject):
    """Fetches prompts off the UI thread; results come back through queued signals."""

    loaded = Signal(int, object)  # generation, prompts
    failed = Signal(int, str)  # generation, message

    def start(self, service: PromptService, generation: int) -> None:
        thread = threading.Thread(target=self.run, args=(service, generation), daemon=True)
        thread.start()

    def run(self, service: PromptService, generation: int) -> None:
        # Any failure must reach the UI; an escaped exception would leave it loading forever.
        try:
            prompts = list(service.get_all_prompts())
        except PromptServiceError as exc:
            logger.error("Loading prompts failed: %s", exc)
            self.failed.emit(generation, str(exc) or "Failed to load prompts")
            return
        except Exception as exc:
            logger.exception("Unexpected error while loading prompts")
            self.failed.emit(generation, str(exc) or "Failed to load prompts")
            return
        self.loaded.emit(generation, prompts)


class SpotlightController(QObject):
    loadingChanged = Signal(bool)
    loadFailed = Signal(str)
    candidatesChanged = Signal(list)
    selectionChanged = Signal(int)
    modalRequested = Signal(object)  # Prompt
    modalClosed = Signal()
    pasteFinished = Signal(object, object)  # CopyPasteResult, Prompt
    pasteFailed = Signal(str)

    def __init__(
        self,
        service: PromptService,
        *,
        debounce_ms: Optional[int] = None,
        background: bool = True,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self.service = service
        self.state = SpotlightState()
        self.selection = SelectionModel()
        self._prompts: Sequence[Prompt] = []
        self._search = PromptSearch()
        self._background = background
        self._generation = 0
        self._shut_down = False

        if debounce_ms is None:
            debounce_ms = config.load_search_debounce_ms()
        self._debouncer = Debouncer("", debounce_ms, self)
        self._debouncer.settled.connect(self._on_query_settled)

        self._loader = _PromptLoader(self)
        self._loader.loaded.connect(self._on_loaded)
        self._loader.failed.connect(self._on_load_failed)

        self.router = KeyboardRouter(self._key_handlers(), enabled=True, parent=self)

    # -- read-only views -------------------------------------------------

    @property
    def prompts(self) -> Sequence[Prompt]:
        return self._prompts

    @property
    def candidates(self) -> Sequence[Prompt]:
        return self.state.candidates

    @property
    def selected_index(self) -> int:
        return self.state.selected_index

    @property
    def selected_prompt(self) -> Optional[Prompt]:
        return self.selection.current(self.state.candidates)

    @property
    def debounced_query(self) -> str:
        return self._debouncer.value or ""

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    @property
    def is_ready(self) -> bool:
        """False while the loading or error page hides the candidate list."""
        return not self.state.loading and self.state.error is None

    # -- loading ---------------------------------------------------------

    def load(self) -> None:
        """Fetch prompts from the service. Results of an older load are discarded."""
        self._generation += 1
        generation = self._generation
        self.state.error = None
        self._set_loading(True)
        if self._background:
            self._loader.start(self.service, generation)
        else:
            self._loader.run(self.service, generation)

    def retry(self) -> None:
        self.load()

    def _set_loading(self, loading: bool) -> None:
        if self.state.loading != loading:
            self.state.loading = loading
            self.loadingChanged.emit(loading)

    def _on_loaded(self, generation: int, prompts: list) -> None:
        if self._shut_down or generation != self._generation:
            logger.debug("Dropping stale prompt load (generation %s)", generation)
            return
        self._prompts = prompts
        self.state.error = None
        self._set_loading(False)
        self._recompute()

    def _on_load_failed(self, generation: int, message: str) -> None:
        if self._shut_down or generation != self._generation:
            return
        self.state.error = message
        self._set_loading(False)
        self.loadFailed.emit(message)

    # -- query and candidates ----------------------------------------------

    def set_query(self, text: str) -> None:
        self.state.query = text
        self._debouncer.push(text)

    def _on_query_settled(self, _value) -> None:
        self._recompute()

    def _recompute(self) -> None:
        previous = self.state.candidates
        candidates = self._search(self._prompts, self.debounced_query)
        self.state.candidates = candidates
        self.candidatesChanged.emit(list(candidates))
        # Reset strictly after the new list exists; selection never follows a prompt.
        if candidates is not previous or len(candidates) != len(previous):
            self.selection.reset(len(candidates))
            self.state.selected_index = 0
            self.selectionChanged.emit(0)

    # -- selection ---------------------------------------------------------

    def move_selection(self, direction: str) -> None:
        if not self.is_ready or not self.state.candidates:
            return
        self.state.selected_index = self.selection.move(direction)
        self.selectionChanged.emit(self.state.selected_index)

    def hover(self, row: int) -> None:
        if self.is_ready and self.selection.hover(row):
            self.state.selected_index = row
            self.selectionChanged.emit(row)

    def set_selected_index(self, index: int) -> None:
        self.selection.set_index(index)
        self.state.selected_index = index
        self.selectionChanged.emit(index)

    def confirm_selection(self) -> None:
        prompt = self.selected_prompt if self.is_ready else None
        if prompt is not None:
            self.select_prompt(prompt)

    def select_prompt(self, prompt: Prompt) -> None:
        """Run a prompt right away, or ask for its variables first."""
        if prompt.has_variables:
            self.state.modal_target = prompt
            self.state.modal_open = True
            self.router.set_enabled(False)
            self.modalRequested.emit(prompt)
        else:
            self.execute(prompt, {})

    # -- variable modal ----------------------------------------------------

    def confirm_modal(self, values: dict) -> None:
        prompt = self.state.modal_target
        if not self.state.modal_open or prompt is None:
            return
        self.execute(prompt, values)

    def cancel_modal(self) -> None:
        self._close_modal()

    def _close_modal(self) -> None:
        if not self.state.modal_open:
            return
        self.state.modal_open = False
        self.state.modal_target = None
        self.router.set_enabled(True)
        self.modalClosed.emit()

    # -- actions -----------------------------------------------------------

    def execute(self, prompt: Prompt, values: dict) -> Optional[CopyPasteResult]:
        """Resolve the prompt's text and hand it to the service for copy/paste."""
        content = substitute_variables(prompt.content, values)
        logger.debug("Executing prompt %s (%d chars)", prompt.id, len(content))
        try:
            self.service.record_usage(prompt.id)
        except PromptServiceError as exc:
            logger.warning("Recording usage for %s failed: %s", prompt.id, exc)
        try:
            result = self.service.copy_and_paste(content, prompt.auto_paste)
        except PromptServiceError as exc:
            logger.error("Pasting %s failed: %s", prompt.id, exc)
            # Close anyway so the user can retry from the list.
            self._close_modal()
            self.pasteFailed.emit(str(exc))
            return None
        self._close_modal()
        self.pasteFinished.emit(result, prompt)
        return result

    def dismiss(self) -> None:
        try:
            self.service.hide_and_restore()
        except PromptServiceError as exc:
            logger.warning("Hiding the spotlight failed: %s", exc)

    def edit_selected(self) -> None:
        prompt = self.selected_prompt if self.is_ready else None
        if prompt is None:
            return
        self._open_window(self.service.open_editor_window, prompt.id, "edit")

    def new_prompt(self) -> None:
        self._open_window(self.service.open_editor_window, None, "create")

    def open_settings(self) -> None:
        self._open_window(self.service.open_settings_window)

    def _open_window(self, opener, *args) -> None:
        try:
            opener(*args)
        except PromptServiceError as exc:
            logger.warning("Opening window failed: %s", exc)

    def _key_handlers(self) -> KeyHandlers:
        return KeyHandlers(
            on_up=lambda: self.move_selection(UP),
            on_down=lambda: self.move_selection(DOWN),
            on_enter=self.confirm_selection,
            on_escape=self.dismiss,
            on_tab=self.confirm_selection,
            chords={
                (Qt.ControlModifier, Qt.Key_E): self.edit_selected,
                (Qt.ControlModifier, Qt.Key_N): self.new_prompt,
                (Qt.ControlModifier, Qt.Key_Comma): self.open_settings,
            },
        )

    def shutdown(self) -> None:
        """Tear down: no pending debounce, no key filter, no late load results."""
        self._shut_down = True
        self._debouncer.cancel()
        self.router.detach()
        self._generation += 1
