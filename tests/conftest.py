"""Shared fixtures: offscreen Qt, isolated config, and a recording prompt service."""
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from prompter.app import config
from prompter.app.models import CopyPasteResult, Prompt, PromptVariable
from prompter.services.base import PromptService, PromptServiceError


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the real ~/.prompter_config.json."""
    path = tmp_path / "prompter_config.json"
    monkeypatch.setattr(config, "GLOBAL_CONFIG", path)
    return path


def make_prompt(name: str, **kwargs) -> Prompt:
    """Prompt with an id and content derived from its name unless given."""
    kwargs.setdefault("id", name.lower().replace(" ", "-"))
    kwargs.setdefault("content", f"{name} content")
    return Prompt(name=name, **kwargs)


@pytest.fixture
def three_prompts():
    """Three plain prompts; only Email Template contains a token, and it declares no variables."""
    return [
        make_prompt("Email Template", description="Write a short message", content="Dear {{recipient}}"),
        make_prompt("Code Review", description="Review a diff", content="Review this change"),
        make_prompt("Meeting Notes", description="Summarize a meeting", content="Summarize the notes"),
    ]


@pytest.fixture
def language_prompt():
    """A prompt with one required variable that has a default."""
    return make_prompt(
        "Explain Code",
        content="Explain this {{language}} snippet",
        variables=(PromptVariable("language", "TypeScript", required=True),),
    )


class RecordingService(PromptService):
    """PromptService double that records every call."""

    def __init__(self, prompts=None) -> None:
        self.prompts = list(prompts or [])
        self.calls: list[tuple] = []
        self.load_error: str | None = None
        self.paste_error: str | None = None
        self.paste_result = CopyPasteResult(True, True, True, "Copied and pasted")

    def names(self, call: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == call]

    def get_all_prompts(self):
        self.calls.append(("get_all_prompts",))
        if self.load_error:
            raise PromptServiceError(self.load_error)
        return list(self.prompts)

    def search_prompts(self, query):
        self.calls.append(("search_prompts", query))
        return []

    def record_usage(self, prompt_id):
        self.calls.append(("record_usage", prompt_id))

    def copy_and_paste(self, text, auto_paste):
        self.calls.append(("copy_and_paste", text, auto_paste))
        if self.paste_error:
            raise PromptServiceError(self.paste_error)
        return self.paste_result

    def hide_and_restore(self):
        self.calls.append(("hide_and_restore",))

    def open_editor_window(self, prompt_id=None, mode="create"):
        self.calls.append(("open_editor_window", prompt_id, mode))

    def open_settings_window(self):
        self.calls.append(("open_settings_window",))


@pytest.fixture
def service(three_prompts):
    """RecordingService over the three plain prompts."""
    return RecordingService(three_prompts)
