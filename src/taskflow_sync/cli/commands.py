# src/taskflow_sync/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.results import OpResult
from ..core.state import AppState
from ..notifications.models import NotificationRecord
from ..timer.timer_models import TimerWidget

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandContext:
    """
    What a command handler gets besides its arguments.

    call runs a coroutine on the session loop and returns its result;
    ask puts a yes/no question to the user (on the console thread, before
    the coroutine is scheduled).
    """

    state: AppState
    call: Callable[[Awaitable[Any]], Any]
    ask: Callable[[str], bool] = lambda _question: False


CommandHandler = Callable[[CommandContext, list[str]], str]


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /timer, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, ctx: CommandContext, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(ctx, args)
        except ValueError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ts(ts: float) -> str:
    if ts <= 0:
        return "-"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def _fmt_result(result: OpResult, done: str) -> str:
    if result.ok:
        return done
    if result.cancelled:
        return "Cancelled."
    return f"{done} (server sync failed: {result.error})"


def format_widget(widget: TimerWidget) -> str:
    if not widget.visible or widget.active_task is None:
        return "No active timer."
    return f"Active timer: {widget.active_task.title or widget.active_task.id}  {widget.formatted_time}"


def format_notification(rec: NotificationRecord) -> str:
    dot = " " if rec.read else "*"
    return f"{dot} [{rec.id}] {rec.title} - {rec.message} ({_fmt_ts(rec.created_at)})"


def _need(args: list[str], n: int, usage: str) -> None:
    if len(args) < n:
        raise ValueError(f"usage: {usage}")


# ---- general ----


def cmd_help(ctx: CommandContext, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(ctx: CommandContext, args: list[str]) -> str:
    s = ctx.state
    return (
        "Status:\n"
        f"  API: {s.settings.taskflow_base_url}\n"
        f"  Push channel: {'connected' if s.channel.connected else 'offline'} ({s.settings.socket_url})\n"
        f"  User: {s.settings.user_id or '-'}\n"
        f"  Unread notifications: {s.inbox.unread_count}\n"
        f"  Team filter: {s.task_list.team_filter or 'all teams'}\n"
        f"  {format_widget(s.timer.widget())}"
    )


# ---- timer / time tracking ----


def cmd_timer(ctx: CommandContext, args: list[str]) -> str:
    return format_widget(ctx.state.timer.widget())


def cmd_open(ctx: CommandContext, args: list[str]) -> str:
    _need(args, 1, "/open <task_id>")
    task = ctx.call(ctx.state.time_tracking.open_task(args[0]))
    if task is None:
        return f"Could not load task {args[0]}."
    spent = int(task.get("timeSpent") or 0)
    entries = task.get("timeEntries") or []
    lines = [
        f"Task {args[0]}: {task.get('title', '')}",
        f"  Status: {task.get('status', '-')}",
        f"  Time spent: {spent // 3600}h {(spent % 3600) // 60}m ({len(entries)} entries)",
        f"  {format_widget(ctx.state.timer.widget())}",
    ]
    return "\n".join(lines)


def cmd_start(ctx: CommandContext, args: list[str]) -> str:
    _need(args, 1, "/start <task_id>")
    result = ctx.call(ctx.state.time_tracking.start_timer(args[0]))
    return _fmt_result(result, format_widget(ctx.state.timer.widget()))


def cmd_stop(ctx: CommandContext, args: list[str]) -> str:
    if ctx.state.timer.active_task is None:
        return "No active timer."
    result = ctx.call(ctx.state.time_tracking.stop_timer())
    return _fmt_result(result, "Timer stopped.")


def cmd_log(ctx: CommandContext, args: list[str]) -> str:
    _need(args, 3, "/log <task_id> <hours> <minutes> [description]")
    task_id, hours, minutes = args[0], int(args[1]), int(args[2])
    description = " ".join(args[3:])
    result = ctx.call(ctx.state.time_tracking.log_time(task_id, hours=hours, minutes=minutes, description=description))
    return _fmt_result(result, f"Logged {hours}h {minutes}m on {task_id}.")


def cmd_entry_delete(ctx: CommandContext, args: list[str]) -> str:
    _need(args, 2, "/entry-delete <task_id> <index>")
    task_id, index = args[0], int(args[1])
    question = "Are you sure you want to delete this time entry?"
    confirmed = ctx.ask(question)
    result = ctx.call(ctx.state.time_tracking.delete_time_entry(task_id, index, confirm=lambda: confirmed))
    return _fmt_result(result, f"Time entry {index} deleted.")


def cmd_reset(ctx: CommandContext, args: list[str]) -> str:
    _need(args, 1, "/reset <task_id>")
    question = "Reset all time tracking? This deletes all time entries and the timer."
    confirmed = ctx.ask(question)
    result = ctx.call(ctx.state.time_tracking.reset_time_tracking(args[0], confirm=lambda: confirmed))
    return _fmt_result(result, f"Time tracking reset for {args[0]}.")


# ---- tasks ----


def cmd_tasks(ctx: CommandContext, args: list[str]) -> str:
    view = ctx.state.task_list
    result = ctx.call(view.refresh())
    if not result.ok:
        return f"Could not load tasks: {result.error}"
    header = f"Tasks ({view.team_filter or 'all teams'}):"
    rows = [
        f"  [{t.get('_id') or t.get('id')}] {t.get('title', '')} ({t.get('status', '-')})"
        for t in view.tasks
    ]
    return "\n".join([header, *rows]) if rows else f"{header}\n  (none)"


def cmd_team(ctx: CommandContext, args: list[str]) -> str:
    ctx.state.task_list.set_team_filter(args[0] if args else None)
    return f"Team filter: {ctx.state.task_list.team_filter or 'all teams'}"


# ---- notifications ----


def _inbox_listing(ctx: CommandContext) -> str:
    inbox = ctx.state.inbox
    badge = inbox.badge
    lines = [f"Notifications{f' ({badge} unread)' if badge else ''}:"]
    if not inbox.records:
        lines.append("  No notifications")
    lines.extend(f"  {format_notification(r)}" for r in inbox.records)
    return "\n".join(lines)


def cmd_inbox(ctx: CommandContext, args: list[str]) -> str:
    result = ctx.call(ctx.state.inbox.open())
    listing = _inbox_listing(ctx)
    return listing if result.ok else f"{listing}\n(refresh failed: {result.error})"


def cmd_close(ctx: CommandContext, args: list[str]) -> str:
    ctx.state.inbox.close()
    return "Inbox closed."


def cmd_read(ctx: CommandContext, args: list[str]) -> str:
    _need(args, 1, "/read <notification_id>")
    result = ctx.call(ctx.state.inbox.mark_read(args[0]))
    return _fmt_result(result, f"Marked {args[0]} as read.")


def cmd_readall(ctx: CommandContext, args: list[str]) -> str:
    result = ctx.call(ctx.state.inbox.mark_all_read())
    return _fmt_result(result, "All notifications marked as read.")


def cmd_delete(ctx: CommandContext, args: list[str]) -> str:
    _need(args, 1, "/delete <notification_id>")
    result = ctx.call(ctx.state.inbox.delete(args[0]))
    return _fmt_result(result, f"Deleted {args[0]}.")


def cmd_clear(ctx: CommandContext, args: list[str]) -> str:
    question = "Are you sure you want to delete all notifications?"
    confirmed = ctx.ask(question)
    result = ctx.call(ctx.state.inbox.delete_all(lambda: confirmed))
    return _fmt_result(result, "All notifications deleted.")


def cmd_click(ctx: CommandContext, args: list[str]) -> str:
    _need(args, 1, "/click <notification_id>")
    rec = ctx.state.inbox.get(args[0])
    if rec is None:
        return f"No notification {args[0]} in the inbox (use /inbox to refresh)."
    route = ctx.call(ctx.state.inbox.open_notification(rec))
    if route is None:
        return "Notification marked as read."
    return f"-> {route.value} view (team filter: {ctx.state.task_list.team_filter or 'all teams'})"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show connection, inbox and timer status.")
registry.register("timer", cmd_timer, help_text="Show the active timer.")
registry.register("open", cmd_open, help_text="Open task details (syncs a timer started elsewhere): /open <task>.")
registry.register("start", cmd_start, help_text="Start the timer on a task: /start <task>.")
registry.register("stop", cmd_stop, help_text="Stop the active timer.")
registry.register("log", cmd_log, help_text="Log time manually: /log <task> <hours> <minutes> [description].")
registry.register("entry-delete", cmd_entry_delete, help_text="Delete a time entry: /entry-delete <task> <index>.")
registry.register("reset", cmd_reset, help_text="Reset all time tracking of a task: /reset <task>.")
registry.register("tasks", cmd_tasks, help_text="List tasks (team filter applied).")
registry.register("team", cmd_team, help_text="Set or clear the team filter: /team [team_id].")
registry.register("inbox", cmd_inbox, help_text="Open the notification inbox (refreshes).", aliases=["n"])
registry.register("close", cmd_close, help_text="Close the notification inbox.")
registry.register("read", cmd_read, help_text="Mark a notification as read: /read <id>.")
registry.register("readall", cmd_readall, help_text="Mark all notifications as read.")
registry.register("delete", cmd_delete, help_text="Delete a notification: /delete <id>.")
registry.register("clear", cmd_clear, help_text="Delete all notifications (asks for confirmation).")
registry.register("click", cmd_click, help_text="Open a notification's target: /click <id>.")
