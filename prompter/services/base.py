from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from prompter.app.models import CopyPasteResult, Prompt, SearchResult

EDITOR_MODES = ("create", "edit")


class PromptServiceError(Exception):
    """Transport or I/O failure inside a prompt service."""


class PromptNotFoundError(PromptServiceError):
    def __init__(self, prompt_id: str) -> None:
        super().__init__(f"Prompt not found: {prompt_id}")
        self.prompt_id = prompt_id


class PromptService(ABC):
    """Boundary to the prompt store and the OS (clipboard, paste, windows)."""

    @abstractmethod
    def get_all_prompts(self) -> list[Prompt]:
        """Return every prompt. Raises PromptServiceError on failure."""

    @abstractmethod
    def search_prompts(self, query: str) -> list[SearchResult]:
        ...

    @abstractmethod
    def record_usage(self, prompt_id: str) -> None:
        ...

    @abstractmethod
    def copy_and_paste(self, text: str, auto_paste: bool) -> CopyPasteResult:
        """Copy text to the clipboard and optionally paste it into the previous app."""

    @abstractmethod
    def hide_and_restore(self) -> None:
        """Hide the spotlight and give focus back to the previous app."""

    @abstractmethod
    def open_editor_window(self, prompt_id: Optional[str] = None, mode: str = "create") -> None:
        ...

    @abstractmethod
    def open_settings_window(self) -> None:
        ...
