"""Tests for LocalPromptService and the prompt file loader."""
import json
import logging
import subprocess
import threading

import pytest

from prompter.app.models import MatchField, prompt_from_dict
from prompter.services.base import PromptNotFoundError, PromptServiceError
from prompter.services.local import SAMPLE_PROMPTS, LocalPromptService, load_prompts_file


class FakeClipboard:
    """Clipboard double that can fail on write or drop what was written."""

    def __init__(self, fail=False, echo=True):
        self.fail = fail
        self.echo = echo
        self.value = ""

    def setText(self, text):
        if self.fail:
            raise RuntimeError("clipboard busy")
        self.value = text

    def text(self):
        return self.value if self.echo else ""


@pytest.fixture
def clipboard():
    """A clipboard that echoes what it receives."""
    return FakeClipboard()


@pytest.fixture
def hidden():
    """Records each hide request."""
    return []


def make_service(clipboard, hidden, runner=None, paste_command=("paste-helper",), **kwargs):
    return LocalPromptService(
        clipboard=clipboard,
        paste_command=paste_command,
        runner=runner or (lambda cmd, **kw: None),
        paste_delay=0,
        on_hide=lambda: hidden.append(True),
        **kwargs,
    )


class TestPromptFile:
    """Reading prompts from JSON files."""

    def test_list_payload(self, tmp_path):
        """A list payload with nulls and missing optional fields."""
        path = tmp_path / "prompts.json"
        path.write_text(json.dumps([
            {
                "id": "1",
                "name": "Greeting",
                "content": "Hello {{who}}",
                "description": None,
                "tags": ["a", "b"],
                "variables": [{"name": "who", "default": "World", "required": True}],
            },
            {"id": "2", "name": "Plain"},
        ]), encoding="utf-8")
        prompts = load_prompts_file(path, default_auto_paste=False)
        assert [p.name for p in prompts] == ["Greeting", "Plain"]
        assert prompts[0].tags == ("a", "b")
        assert prompts[0].description is None
        assert prompts[0].variables[0].default == "World"
        assert prompts[0].variables[0].required
        assert prompts[1].content == ""
        assert prompts[1].auto_paste is False

    def test_wrapped_payload(self, tmp_path):
        """A {"prompts": [...]} payload."""
        path = tmp_path / "prompts.json"
        path.write_text(json.dumps({"prompts": [{"id": "1", "name": "One", "auto_paste": False}]}))
        prompts = load_prompts_file(path)
        assert prompts[0].auto_paste is False

    @pytest.mark.parametrize("text", ["not json", "42", '[{"name": "no id"}]', '["string"]'])
    def test_bad_files_raise_service_error(self, tmp_path, text):
        """Unparseable or malformed files raise PromptServiceError."""
        path = tmp_path / "prompts.json"
        path.write_text(text, encoding="utf-8")
        with pytest.raises(PromptServiceError):
            load_prompts_file(path)

    @pytest.mark.parametrize("field", [{"tags": 5}, {"variables": True}])
    def test_wrongly_typed_fields_raise_service_error(self, tmp_path, field):
        """Fields of the wrong type are a load error, not a crash."""
        path = tmp_path / "prompts.json"
        path.write_text(json.dumps([{"id": "a", "name": "A", "content": "x", **field}]), encoding="utf-8")
        with pytest.raises(PromptServiceError, match="Failed to load prompts"):
            load_prompts_file(path)

    def test_undeclared_variables_are_logged(self, tmp_path, caplog):
        """Tokens with no declared variable are loaded but logged."""
        path = tmp_path / "prompts.json"
        path.write_text(json.dumps([
            {"id": "greet", "name": "Greet", "content": "Hi {{who}} from {{team}}",
             "variables": [{"name": "who"}]},
            {"id": "plain", "name": "Plain", "content": "Nothing to fill"},
        ]), encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="prompter.services.local"):
            prompts = load_prompts_file(path)
        assert [p.id for p in prompts] == ["greet", "plain"]
        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "greet" in warnings[0]
        assert "team" in warnings[0]
        assert "who" not in warnings[0]

    def test_missing_file(self, tmp_path):
        """A missing file raises PromptServiceError."""
        with pytest.raises(PromptServiceError):
            load_prompts_file(tmp_path / "nope.json")

    def test_from_json_file_rereads(self, tmp_path):
        """Each load re-reads the file, so a retry sees the fix."""
        path = tmp_path / "prompts.json"
        path.write_text("broken", encoding="utf-8")
        service = LocalPromptService.from_json_file(path)
        with pytest.raises(PromptServiceError):
            service.get_all_prompts()
        path.write_text(json.dumps([{"id": "1", "name": "Fixed"}]), encoding="utf-8")
        assert [p.name for p in service.get_all_prompts()] == ["Fixed"]

    def test_prompt_from_dict_requires_object(self):
        """A non-object entry is rejected."""
        with pytest.raises(ValueError):
            prompt_from_dict(["id"])


class TestLocalPromptService:
    """The in-process prompt service."""

    def test_defaults_to_samples(self, clipboard, hidden):
        """Without prompts the service serves the samples, as copies."""
        service = make_service(clipboard, hidden)
        assert service.get_all_prompts() == list(SAMPLE_PROMPTS)
        assert service.get_all_prompts() is not service.get_all_prompts()

    def test_search_prompts_ranks(self, clipboard, hidden):
        """search_prompts ranks name matches first."""
        service = make_service(clipboard, hidden)
        results = service.search_prompts("code")
        assert results[0].prompt.name == "Code Review"
        assert results[0].matched_field is MatchField.NAME

    def test_record_usage(self, clipboard, hidden):
        """Usage is counted per prompt; unknown ids raise."""
        service = make_service(clipboard, hidden)
        service.record_usage("code-review")
        service.record_usage("code-review")
        assert service.usage["code-review"] == 2
        with pytest.raises(PromptNotFoundError) as excinfo:
            service.record_usage("missing")
        assert excinfo.value.prompt_id == "missing"

    def test_copy_without_auto_paste(self, clipboard, hidden):
        """Copy-only hides the window and skips the helper."""
        calls = []
        service = make_service(clipboard, hidden, runner=lambda cmd, **kw: calls.append(cmd))
        result = service.copy_and_paste("text", auto_paste=False)
        assert clipboard.value == "text"
        assert hidden == [True]
        assert calls == []
        assert result.clipboard_success
        assert not result.paste_attempted
        assert result.message == "Copied to clipboard"

    def test_copy_and_paste(self, clipboard, hidden):
        """The helper runs after the window hides and reports success."""
        calls = []
        service = make_service(clipboard, hidden, runner=lambda cmd, **kw: calls.append(cmd))
        result = service.copy_and_paste("text", auto_paste=True)
        assert result.paste_likely_success
        assert result.message == "Copied and pasted"
        assert service.wait_for_paste(timeout=2) is True
        assert calls == [["paste-helper"]]
        assert hidden == [True]

    def test_paste_helper_failure_is_recorded(self, clipboard, hidden):
        """A failing helper is logged and recorded without touching the result."""
        def failing(cmd, **kw):
            raise subprocess.CalledProcessError(1, cmd)

        service = make_service(clipboard, hidden, runner=failing)
        result = service.copy_and_paste("text", auto_paste=True)
        assert result.clipboard_success
        assert result.paste_attempted
        assert result.message == "Copied and pasted"
        assert service.wait_for_paste(timeout=2) is False
        assert service.last_paste_ok is False

    def test_paste_does_not_block_the_caller(self, clipboard, hidden):
        """copy_and_paste returns while the helper is still waiting to run."""
        release = threading.Event()
        calls = []

        def blocking(cmd, **kw):
            release.wait(2)
            calls.append(cmd)

        service = make_service(clipboard, hidden, runner=blocking)
        result = service.copy_and_paste("text", auto_paste=True)
        assert result.paste_likely_success
        assert calls == []
        assert service.last_paste_ok is None
        release.set()
        assert service.wait_for_paste(timeout=2) is True
        assert calls == [["paste-helper"]]

    def test_hide_failure_means_manual_paste(self, clipboard):
        """If hiding fails, focus was not restored and Ctrl+V is requested."""
        def broken_hide():
            raise RuntimeError("window gone")

        service = LocalPromptService(
            clipboard=clipboard,
            paste_command=["paste-helper"],
            runner=lambda cmd, **kw: None,
            paste_delay=0,
            on_hide=broken_hide,
        )
        result = service.copy_and_paste("text", auto_paste=True)
        assert not result.paste_likely_success
        assert result.message == "Copied to clipboard - press Ctrl+V to paste"
        service.wait_for_paste(timeout=2)

    def test_no_paste_helper(self, clipboard, hidden, monkeypatch):
        """Without a helper the user is told to press Ctrl+V."""
        monkeypatch.setattr("prompter.services.local.default_paste_command", lambda: None)
        service = make_service(clipboard, hidden, paste_command=None)
        result = service.copy_and_paste("text", auto_paste=True)
        assert not result.paste_likely_success
        assert result.message == "Copied to clipboard - press Ctrl+V to paste"

    def test_clipboard_failure(self, hidden):
        """A clipboard error is reported and the window stays."""
        service = make_service(FakeClipboard(fail=True), hidden)
        result = service.copy_and_paste("text", auto_paste=True)
        assert not result.clipboard_success
        assert result.message.startswith("Failed to copy to clipboard")
        assert hidden == []

    def test_clipboard_mismatch_still_succeeds(self, hidden):
        """A clipboard that reads back differently still counts as copied."""
        service = make_service(FakeClipboard(echo=False), hidden)
        result = service.copy_and_paste("text", auto_paste=False)
        assert result.clipboard_success

    def test_window_hooks(self, clipboard, hidden):
        """Hooks are optional and called once set."""
        opened = []
        service = make_service(clipboard, hidden)
        service.open_editor_window()
        service.open_settings_window()
        service.set_window_hooks(
            on_open_editor=lambda prompt_id, mode: opened.append((prompt_id, mode)),
            on_open_settings=lambda: opened.append("settings"),
        )
        service.open_editor_window("code-review", "edit")
        service.open_settings_window()
        service.hide_and_restore()
        assert opened == [("code-review", "edit"), "settings"]
        assert hidden == [True]
        with pytest.raises(ValueError):
            service.open_editor_window(None, "delete")
