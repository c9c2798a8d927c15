"""Prompt service backed by memory (optionally seeded from a JSON file) and the Qt clipboard."""
from __future__ import annotations

import json
import logging
import platform
import shutil
import subprocess
import threading
import time
from collections import Counter
from pathlib import Path
from typing import Callable, Optional, Sequence

from PySide6.QtGui import QGuiApplication

from prompter.app.models import CopyPasteResult, Prompt, PromptVariable, SearchResult, prompt_from_dict
from prompter.app.search import rank_prompts
from prompter.app.variables import undeclared_variables
from .base import EDITOR_MODES, PromptNotFoundError, PromptService, PromptServiceError

logger = logging.getLogger(__name__)

SAMPLE_PROMPTS: tuple[Prompt, ...] = (
    Prompt(
        id="email-template",
        name="Email Template",
        description="Polite follow-up email",
        content="Hi {{recipient}},\n\nJust following up on {{topic}}.\n\nBest regards",
        folder="Writing",
        icon="✉",
        color="#3B82F6",
        tags=("email", "writing"),
        variables=(
            PromptVariable("recipient", "", required=True),
            PromptVariable("topic", "our last conversation"),
        ),
    ),
    Prompt(
        id="code-review",
        name="Code Review",
        description="Review a change for bugs and style",
        content="Review the following {{language}} code for bugs, readability and style.",
        folder="Coding",
        icon="⌨",
        color="#10B981",
        tags=("coding", "review"),
        variables=(PromptVariable("language", "TypeScript", required=True),),
    ),
    Prompt(
        id="meeting-notes",
        name="Meeting Notes",
        description="Summarize a meeting into action items",
        content="Summarize these meeting notes into decisions and action items.",
        folder="Writing",
        icon="✎",
        color="#F59E0B",
        tags=("meetings",),
    ),
)


def load_prompts_file(path: Path, default_auto_paste: bool = True) -> list[Prompt]:
    """Read prompts from a JSON file: a list of prompt objects or ``{"prompts": [...]}``."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PromptServiceError(f"Failed to load prompts from {path}: {exc}") from exc
    if isinstance(payload, dict):
        payload = payload.get("prompts", [])
    if not isinstance(payload, list):
        raise PromptServiceError(f"Failed to load prompts from {path}: expected a list of prompts")
    try:
        prompts = [prompt_from_dict(entry, default_auto_paste) for entry in payload]
    except (KeyError, TypeError, ValueError) as exc:
        raise PromptServiceError(f"Failed to load prompts from {path}: {exc}") from exc
    for prompt in prompts:
        unfilled = undeclared_variables(prompt.content, prompt.variables)
        if unfilled:
            logger.warning(
                "Prompt %s uses undeclared variables %s; they will be pasted verbatim",
                prompt.id,
                ", ".join(unfilled),
            )
    return prompts


def default_paste_command() -> Optional[list[str]]:
    """Return the command that simulates the paste chord on this platform, if one is available."""
    system = platform.system()
    if system == "Linux" and shutil.which("xdotool"):
        return ["xdotool", "key", "--clearmodifiers", "ctrl+v"]
    if system == "Darwin" and shutil.which("osascript"):
        return [
            "osascript",
            "-e",
            'tell application "System Events" to keystroke "v" using command down',
        ]
    return None


class LocalPromptService(PromptService):
    def __init__(
        self,
        prompts: Optional[Sequence[Prompt]] = None,
        *,
        source_path: Optional[Path] = None,
        default_auto_paste: bool = True,
        clipboard=None,
        paste_command: Optional[Sequence[str]] = None,
        runner: Callable = subprocess.run,
        paste_delay: float = 0.1,
        on_hide: Optional[Callable[[], None]] = None,
        on_open_editor: Optional[Callable[[Optional[str], str], None]] = None,
        on_open_settings: Optional[Callable[[], None]] = None,
    ) -> None:
        self._prompts: list[Prompt] = list(prompts if prompts is not None else SAMPLE_PROMPTS)
        self.source_path = Path(source_path) if source_path else None
        self.default_auto_paste = default_auto_paste
        self._clipboard = clipboard
        self._paste_command = list(paste_command) if paste_command is not None else default_paste_command()
        self._runner = runner
        self.paste_delay = paste_delay
        self._on_hide = on_hide
        self._on_open_editor = on_open_editor
        self._on_open_settings = on_open_settings
        self.usage: Counter[str] = Counter()
        self.last_paste_ok: Optional[bool] = None
        self._paste_thread: Optional[threading.Thread] = None

    @classmethod
    def from_json_file(cls, path: Path, **kwargs) -> "LocalPromptService":
        return cls(prompts=[], source_path=path, **kwargs)

    def set_window_hooks(
        self,
        on_hide: Optional[Callable[[], None]] = None,
        on_open_editor: Optional[Callable[[Optional[str], str], None]] = None,
        on_open_settings: Optional[Callable[[], None]] = None,
    ) -> None:
        if on_hide is not None:
            self._on_hide = on_hide
        if on_open_editor is not None:
            self._on_open_editor = on_open_editor
        if on_open_settings is not None:
            self._on_open_settings = on_open_settings

    def get_all_prompts(self) -> list[Prompt]:
        if self.source_path is not None:
            # Re-read on every call so a retry picks up a fixed file.
            self._prompts = load_prompts_file(self.source_path, self.default_auto_paste)
        return list(self._prompts)

    def get_prompt(self, prompt_id: str) -> Prompt:
        for prompt in self._prompts:
            if prompt.id == prompt_id:
                return prompt
        raise PromptNotFoundError(prompt_id)

    def search_prompts(self, query: str) -> list[SearchResult]:
        return rank_prompts(self._prompts, query)

    def record_usage(self, prompt_id: str) -> None:
        self.get_prompt(prompt_id)
        self.usage[prompt_id] += 1

    def copy_and_paste(self, text: str, auto_paste: bool) -> CopyPasteResult:
        logger.info("copy_and_paste: text_len=%d auto_paste=%s", len(text), auto_paste)
        clipboard = self._clipboard
        if clipboard is None and QGuiApplication.instance() is not None:
            clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            return CopyPasteResult(False, False, False, "Failed to copy to clipboard: no clipboard available")
        try:
            clipboard.setText(text)
        except RuntimeError as exc:
            return CopyPasteResult(False, False, False, f"Failed to copy to clipboard: {exc}")

        if clipboard.text() != text:
            logger.warning("Clipboard content mismatch after copy (may still work)")

        focus_restored = self._hide()

        paste_started = False
        if auto_paste:
            paste_started = self._start_paste()
        paste_likely_success = auto_paste and paste_started and focus_restored

        if not auto_paste:
            message = "Copied to clipboard"
        elif paste_likely_success:
            message = "Copied and pasted"
        elif not focus_restored or self._paste_command is None:
            message = "Copied to clipboard - press Ctrl+V to paste"
        else:
            message = "Copied to clipboard - press Ctrl+V if not pasted"
        logger.info("copy_and_paste completed: %s", message)
        return CopyPasteResult(True, auto_paste, paste_likely_success, message)

    def hide_and_restore(self) -> None:
        self._hide()

    def open_editor_window(self, prompt_id: Optional[str] = None, mode: str = "create") -> None:
        if mode not in EDITOR_MODES:
            raise ValueError(f"Unknown editor mode: {mode!r}")
        if self._on_open_editor is None:
            logger.info("Editor window unavailable (prompt_id=%s, mode=%s)", prompt_id, mode)
            return
        self._on_open_editor(prompt_id, mode)

    def open_settings_window(self) -> None:
        if self._on_open_settings is None:
            logger.info("Settings window unavailable")
            return
        self._on_open_settings()

    def _hide(self) -> bool:
        if self._on_hide is None:
            return True
        try:
            self._on_hide()
        except RuntimeError as exc:
            logger.warning("Hiding the spotlight failed: %s", exc)
            return False
        return True

    def wait_for_paste(self, timeout: Optional[float] = None) -> Optional[bool]:
        """Block until the last paste helper run finishes; returns its outcome."""
        thread = self._paste_thread
        if thread is not None:
            thread.join(timeout)
        return self.last_paste_ok

    def _start_paste(self) -> bool:
        """Run the paste helper on a worker thread so the UI never waits on it."""
        if self._paste_command is None:
            logger.info("No paste helper available; leaving text on the clipboard")
            return False
        self.last_paste_ok = None
        # Not a daemon: a one-shot launcher exits right after hiding and the
        # interpreter must still wait for the keystroke to be sent.
        thread = threading.Thread(target=self._simulate_paste, name="prompter-paste")
        try:
            thread.start()
        except RuntimeError as exc:
            logger.warning("Could not start paste helper: %s", exc)
            return False
        self._paste_thread = thread
        return True

    def _simulate_paste(self) -> None:
        if self.paste_delay > 0:
            # Give the previous window time to take focus back.
            time.sleep(self.paste_delay)
        try:
            self._runner(self._paste_command, check=True, timeout=2, capture_output=True)
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("Paste simulation failed: %s", exc)
            self.last_paste_ok = False
            return
        self.last_paste_ok = True
