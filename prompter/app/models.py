from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class PromptVariable:
    """A ``{{name}}`` placeholder inside a prompt's content."""
    name: str
    default: str = ""
    required: bool = False
    description: Optional[str] = None


@dataclass(frozen=True)
class Prompt:
    """A stored text template. Read-only for the spotlight."""
    id: str
    name: str
    content: str
    description: Optional[str] = None
    folder: str = ""
    icon: str = ""
    color: str = ""
    tags: tuple[str, ...] = ()
    variables: tuple[PromptVariable, ...] = ()
    auto_paste: bool = True
    is_favorite: bool = False

    @property
    def has_variables(self) -> bool:
        return bool(self.variables)


class MatchField(IntEnum):
    """Prompt fields in search priority order (lower value wins)."""
    NAME = 0
    DESCRIPTION = 1
    TAGS = 2
    CONTENT = 3


@dataclass(frozen=True)
class SearchResult:
    prompt: Prompt
    score: float
    matched_field: MatchField


@dataclass(frozen=True)
class CopyPasteResult:
    """Outcome of handing resolved text to the clipboard/paste layer."""
    clipboard_success: bool
    paste_attempted: bool
    paste_likely_success: bool
    message: str


@dataclass
class SpotlightState:
    """In-memory state of one mounted spotlight session."""
    query: str = ""
    candidates: list[Prompt] = field(default_factory=list)
    selected_index: int = 0
    modal_open: bool = False
    modal_target: Optional[Prompt] = None
    loading: bool = False
    error: Optional[str] = None


def _as_tuple(values: Optional[Iterable[Any]]) -> tuple:
    if not values:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(values)


def variable_from_dict(payload: dict) -> PromptVariable:
    description = payload.get("description")
    return PromptVariable(
        name=str(payload["name"]),
        default=str(payload.get("default") or ""),
        required=bool(payload.get("required", False)),
        description=str(description) if description else None,
    )


def prompt_from_dict(payload: dict, default_auto_paste: bool = True) -> Prompt:
    """Build a Prompt from a JSON-style mapping; optional fields may be missing or null."""
    if not isinstance(payload, dict):
        raise ValueError(f"Prompt entry must be an object, got {type(payload).__name__}")
    for key in ("id", "name"):
        if not payload.get(key):
            raise ValueError(f"Prompt entry is missing '{key}'")
    description = payload.get("description")
    variables = tuple(
        variable_from_dict(entry)
        for entry in _as_tuple(payload.get("variables"))
        if isinstance(entry, dict) and entry.get("name")
    )
    return Prompt(
        id=str(payload["id"]),
        name=str(payload["name"]),
        content=str(payload.get("content") or ""),
        description=str(description) if description is not None else None,
        folder=str(payload.get("folder") or ""),
        icon=str(payload.get("icon") or ""),
        color=str(payload.get("color") or ""),
        tags=tuple(str(tag) for tag in _as_tuple(payload.get("tags"))),
        variables=variables,
        auto_paste=bool(payload.get("auto_paste", default_auto_paste)),
        is_favorite=bool(payload.get("is_favorite", False)),
    )
