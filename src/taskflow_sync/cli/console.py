# src/taskflow_sync/cli/console.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..core.state import AppState
from ..notifications.models import NotificationRecord
from .commands import CommandContext
from .commands import registry as command_registry
from .runner import SessionRunner

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleToaster:
    """Transient user-visible messages, printed with a timestamp."""

    def toast(self, message: str) -> None:
        _print_ts(f"[TIMER] {message}")


def _print_push(record: NotificationRecord) -> None:
    _print_ts(f"[NOTIFY] {record.title}: {record.message}")


def _ask(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ").strip().lower()
    except (EOFError, KeyboardInterrupt):
        print()
        return False
    return answer in ("y", "yes")


def run_console_loop(state: AppState, runner: SessionRunner) -> None:
    logger.info("Console started (user=%s).", getattr(state.settings, "user_id", None) or "-")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    off_push = state.channel.on_event(_print_push)
    ctx = CommandContext(state=state, call=runner.call, ask=_ask)

    try:
        while True:
            try:
                line = input(">>> ").strip()
                _rewrite_prev_line(f"[{_ts_local()}] >>> {line}")
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not line:
                continue

            if line.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                reply = command_registry.handle(ctx, line)
            except TimeoutError:
                logger.warning("Command timed out: %s", line)
                reply = "The server did not answer in time."
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is None:
                reply = "Not a command. Use /help to list available commands."
            _print_ts(reply)
    finally:
        off_push()
