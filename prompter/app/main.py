from __future__ import annotations

import argparse
import logging
import os
import sys
import time
import traceback
from pathlib import Path

from PySide6.QtCore import QtMsgType, qInstallMessageHandler
from PySide6.QtWidgets import QApplication

from prompter.app import config
from prompter.app.ui.spotlight_window import SpotlightWindow
from prompter.services.local import LocalPromptService


# ============================================================================
# DEBUG CONFIGURATION - Environment Variables
# ============================================================================
# Set these environment variables to "1" or "true" to enable detailed logging
#
# PROMPTER_DEBUG         - DEBUG level for every prompter logger
# PROMPTER_DEBUG_KEYS    - Keyboard router enable/disable and dispatched keys
# PROMPTER_DEBUG_FOCUS   - Focus trap capture/restore
# PROMPTER_DEBUG_SEARCH  - Search recomputation
# ============================================================================


def _diag(msg: str) -> None:
    """Lightweight diagnostic logger for startup/teardown events."""
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
    print(f"[PrompterDiag {timestamp}] {msg}", file=sys.stderr)


def _configure_logging() -> None:
    level = logging.DEBUG if config.debug_enabled("PROMPTER_DEBUG") else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _qt_message_handler(mode: QtMsgType, context, message: str) -> None:
    """Custom Qt message handler to suppress known harmless warnings."""
    if "QWindowsFontEngineDirectWrite::recalcAdvances" in message:
        return
    if "Accessible invalid" in message or "Could not find accessible on path" in message:
        return
    if mode == QtMsgType.QtDebugMsg:
        print(f"Qt Debug: {message}", file=sys.stderr)
    elif mode == QtMsgType.QtWarningMsg:
        print(f"Qt Warning: {message}", file=sys.stderr)
    elif mode == QtMsgType.QtCriticalMsg:
        print(f"Qt Critical: {message}", file=sys.stderr)
    elif mode == QtMsgType.QtFatalMsg:
        print(f"Qt Fatal: {message}", file=sys.stderr)
        sys.exit(1)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="prompter",
        description="Spotlight-style launcher for reusable text prompts.",
    )
    parser.add_argument(
        "--prompts",
        metavar="FILE",
        help="JSON file with a list of prompts (default: configured prompts_file, else built-in samples)",
    )
    parser.add_argument(
        "--debounce-ms",
        type=int,
        default=None,
        help="Delay before the result list follows the query (default: configured, 150)",
    )
    parser.add_argument("--no-hints", action="store_true", help="Hide the keyboard hint footer")
    return parser.parse_args(argv)


def build_service(prompts_file: str | None) -> LocalPromptService:
    default_auto_paste = config.load_auto_paste_default()
    path = prompts_file or config.load_prompts_file()
    if path:
        return LocalPromptService.from_json_file(
            Path(os.path.expanduser(path)), default_auto_paste=default_auto_paste
        )
    return LocalPromptService(default_auto_paste=default_auto_paste)


def main() -> None:
    args = _parse_args(sys.argv[1:])
    _configure_logging()
    start_ts = time.time()
    _diag("Application starting.")
    config.init_settings()
    qInstallMessageHandler(_qt_message_handler)
    qt_app = QApplication(sys.argv)
    qt_app.aboutToQuit.connect(lambda: _diag("QApplication aboutToQuit emitted."))

    service = build_service(args.prompts)
    window = SpotlightWindow(
        service,
        debounce_ms=args.debounce_ms,
        show_hints=False if args.no_hints else None,
    )
    # One-shot launcher: dismissing the surface closes it and the last closed
    # window ends the process. A desktop hotkey starts it again.
    service.set_window_hooks(on_hide=window.close)
    try:
        window.present()
        _diag("Spotlight shown; entering Qt event loop.")
        rc = qt_app.exec()
        _diag(f"Qt event loop exited with code {rc} after {time.time() - start_ts:.2f}s.")
        sys.exit(rc)
    except Exception as exc:
        _diag(f"Unhandled exception after {time.time() - start_ts:.2f}s: {exc}")
        traceback.print_exc()
        qt_app.quit()
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
