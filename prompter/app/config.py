from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

GLOBAL_CONFIG = Path.home() / ".prompter_config.json"

DEFAULT_SEARCH_DEBOUNCE_MS = 150


def debug_enabled(var_name: str) -> bool:
    """Check if a debug flag (e.g. PROMPTER_DEBUG_KEYS) is enabled."""
    return os.getenv(var_name, "0") not in ("0", "false", "False", "", None)


def init_settings() -> None:
    GLOBAL_CONFIG.parent.mkdir(parents=True, exist_ok=True)


def _read_global_config() -> dict:
    """Return the parsed global config, or an empty dict on error/missing."""
    if not GLOBAL_CONFIG.exists():
        return {}
    try:
        payload = json.loads(GLOBAL_CONFIG.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _update_global_config(updates: dict) -> None:
    """Merge updates into global config file."""
    existing = _read_global_config()
    existing.update(updates)
    GLOBAL_CONFIG.write_text(json.dumps(existing, indent=2), encoding="utf-8")


def load_search_debounce_ms() -> int:
    """Load the search debounce delay in milliseconds (default: 150)."""
    payload = _read_global_config()
    try:
        ms = int(payload.get("search_debounce_ms", DEFAULT_SEARCH_DEBOUNCE_MS))
        return max(0, min(2000, ms))
    except (TypeError, ValueError):
        return DEFAULT_SEARCH_DEBOUNCE_MS


def save_search_debounce_ms(ms: int) -> None:
    try:
        val = max(0, min(2000, int(ms)))
    except (TypeError, ValueError):
        val = DEFAULT_SEARCH_DEBOUNCE_MS
    _update_global_config({"search_debounce_ms": val})


def load_show_keyboard_hints() -> bool:
    """Return whether the spotlight footer shows keyboard hints (default: True)."""
    payload = _read_global_config()
    return bool(payload.get("show_keyboard_hints", True))


def save_show_keyboard_hints(enabled: bool) -> None:
    _update_global_config({"show_keyboard_hints": bool(enabled)})


def load_auto_paste_default() -> bool:
    """Default auto_paste flag for prompt files that do not set one (default: True)."""
    payload = _read_global_config()
    return bool(payload.get("auto_paste", True))


def save_auto_paste_default(enabled: bool) -> None:
    _update_global_config({"auto_paste": bool(enabled)})


def load_prompts_file() -> Optional[str]:
    payload = _read_global_config()
    path = payload.get("prompts_file")
    return path if isinstance(path, str) and path.strip() else None


def save_prompts_file(path: Optional[str]) -> None:
    _update_global_config({"prompts_file": str(Path(path)) if path else None})


def load_spotlight_geometry() -> Optional[str]:
    """Load the saved spotlight window geometry (base64 encoded QByteArray)."""
    payload = _read_global_config()
    geometry = payload.get("spotlight_geometry")
    return geometry if isinstance(geometry, str) and geometry else None


def save_spotlight_geometry(geometry: str) -> None:
    """Save the spotlight window geometry (base64 encoded QByteArray)."""
    _update_global_config({"spotlight_geometry": geometry})
