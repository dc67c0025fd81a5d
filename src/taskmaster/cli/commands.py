# src/taskmaster/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import date
from typing import cast

from ..core.state import AppState
from ..insights.recommendations import RecommendationClient, task_insight
from ..llm.client import GeminiLLMClient
from ..tasks import task_api
from ..tasks.task_models import CATEGORIES, CATEGORY_ALL, Priority, Task, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler3 = Callable[[AppState, list[str], str], str]
CommandHandler4 = Callable[[AppState, list[str], str, CommandEmitter | None], str]
CommandHandler = CommandHandler3 | CommandHandler4

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

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

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: str | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
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

        uid = user_id or state.user_id

        if len(inspect.signature(handler).parameters) >= 4:
            h4 = cast(CommandHandler4, handler)
            return h4(state, args, uid, emit)

        h3 = cast(CommandHandler3, handler)
        return h3(state, args, uid)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_id(args: list[str], usage: str) -> int:
    if not args:
        raise ValueError(usage)
    raw = args[0].lstrip("#")
    if not raw.isdigit():
        raise ValueError(usage)
    return int(raw)


def _format_task(t: Task) -> str:
    mark = "[x]" if t.is_completed else ("[~]" if t.status is TaskStatus.IN_PROGRESS else "[ ]")
    due = f" due {t.due_date.date().isoformat()}" if t.due_date else ""
    return f"{mark} #{t.id} {t.title} ({t.priority.label}, {t.category}){due}"


def cmd_help(state: AppState, args: list[str], user_id: str) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], user_id: str) -> str:
    ai = "online" if isinstance(state.llm, GeminiLLMClient) else "offline"
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  User: {user_id}\n"
        f"  AI: {ai}\n"
        f"  Models (priority -> fallback): {models}\n"
        f"  Streak timezone: {getattr(state.settings, 'streak_timezone', 'utc')}"
    )


def cmd_add(state: AppState, args: list[str], user_id: str) -> str:
    """
    /add Buy milk !2 #Personal @2024-05-01

    !N   -> priority 1..4
    #Cat -> category
    @D   -> due date (YYYY-MM-DD)
    """
    words: list[str] = []
    priority: Priority = Priority.MEDIUM
    category: str | None = None
    due: date | None = None

    for a in args:
        if a.startswith("!") and len(a) > 1:
            priority = Priority.parse(a[1:])
        elif a.startswith("#") and len(a) > 1:
            category = a[1:]
        elif a.startswith("@") and len(a) > 1:
            try:
                due = date.fromisoformat(a[1:])
            except ValueError:
                raise ValueError(f"Bad due date {a[1:]!r}, expected YYYY-MM-DD") from None
        else:
            words.append(a)

    task = task_api.create_task(
        state, user_id, " ".join(words), priority=priority, category=category, due_date=due
    )
    return f"Task created successfully! {_format_task(task)}"


def cmd_list(state: AppState, args: list[str], user_id: str) -> str:
    """
    /list            -> all tasks
    /list Work       -> tasks of one category
    """
    category = args[0] if args else CATEGORY_ALL
    tasks = task_api.list_tasks(state, user_id, category)
    if not tasks:
        return "No tasks yet. Use /add to create one." if category == CATEGORY_ALL else f"No tasks in {category}."
    return "\n".join(_format_task(t) for t in tasks)


def cmd_show(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _parse_id(args, "Usage: /show <task_id>")
    details = task_api.get_task_details(state, user_id, task_id)
    if details is None:
        return f"Task #{task_id} not found."

    t = details.task
    lines = [_format_task(t)]
    if t.description:
        lines.append(f"  {t.description}")
    lines.append(f"  Status: {t.status}  Estimate: {t.time_estimate} min  Spent: {t.time_spent} min")
    if t.reminder_time:
        lines.append(f"  Reminder: {t.reminder_time.isoformat(timespec='minutes')}")
    if t.completed_at:
        lines.append(f"  Completed at: {t.completed_at.isoformat(timespec='seconds')}")
    if details.subtasks:
        lines.append("  Subtasks:")
        for s in details.subtasks:
            lines.append(f"    {'[x]' if s.completed else '[ ]'} #{s.id} {s.title}")
    if details.attachments:
        lines.append("  Attachments:")
        for a in details.attachments:
            lines.append(f"    #{a.id} {a.file_name} ({a.file_type}, {a.file_size} bytes) {a.file_url}")
    insight = task_insight(t)
    if insight:
        lines.append(f"  AI insight: {insight}")
    return "\n".join(lines)


def cmd_done(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _parse_id(args, "Usage: /done <task_id>")
    task = task_api.toggle_task_status(state, user_id, task_id)
    if task is None:
        return f"Task #{task_id} not found."
    if not task.is_completed:
        return f"Task #{task.id} reopened."
    streak = task_api.get_streak(state, user_id)
    return f"Task #{task.id} completed. Streak: {streak.current_streak} day(s)."


def cmd_start(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _parse_id(args, "Usage: /start <task_id>")
    task = task_api.set_task_status(state, user_id, task_id, TaskStatus.IN_PROGRESS)
    if task is None:
        return f"Task #{task_id} not found."
    return f"Task #{task.id} is in progress."


def cmd_delete(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _parse_id(args, "Usage: /delete <task_id>")
    if not task_api.delete_task(state, user_id, task_id):
        return f"Task #{task_id} not found."
    return f"Task #{task_id} deleted."


def cmd_sub(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _parse_id(args, "Usage: /sub <task_id> <title>")
    sub_id = task_api.add_subtask(state, user_id, task_id, " ".join(args[1:]))
    return f"Subtask #{sub_id} added to task #{task_id}."


def cmd_subdone(state: AppState, args: list[str], user_id: str) -> str:
    sub_id = _parse_id(args, "Usage: /subdone <subtask_id>")
    sub = task_api.toggle_subtask(state, user_id, sub_id)
    if sub is None:
        return f"Subtask #{sub_id} not found."
    return f"Subtask #{sub.id} {'done' if sub.completed else 'reopened'}."


def cmd_attach(state: AppState, args: list[str], user_id: str) -> str:
    usage = "Usage: /attach <task_id> <file_name> <mime_type> <url> [size_bytes]"
    task_id = _parse_id(args, usage)
    if len(args) < 4:
        raise ValueError(usage)
    size = int(args[4]) if len(args) > 4 and args[4].isdigit() else 0
    att_id = task_api.add_attachment(
        state, user_id, task_id, file_name=args[1], file_type=args[2], file_url=args[3], file_size=size
    )
    return f"Attachment #{att_id} added to task #{task_id}."


def cmd_streak(state: AppState, args: list[str], user_id: str) -> str:
    s = task_api.get_streak(state, user_id)
    last = s.last_completed_date.isoformat() if s.last_completed_date else "never"
    return (
        f"Day streak: {s.current_streak}\n"
        f"  Longest: {s.longest_streak} days\n"
        f"  Total completed: {s.total_tasks_completed}\n"
        f"  Last completion: {last}"
    )


def cmd_stats(state: AppState, args: list[str], user_id: str) -> str:
    st = task_api.task_stats(state, user_id)
    return (
        "Your insights:\n"
        f"  Total: {st.total}\n"
        f"  Completed: {st.completed}\n"
        f"  In progress: {st.in_progress}\n"
        f"  Pending: {st.pending}\n"
        f"  Completion rate: {st.completion_rate}%"
    )


def cmd_insight(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _parse_id(args, "Usage: /insight <task_id>")
    task = state.task_store.get_task(user_id, task_id)
    if task is None:
        return f"Task #{task_id} not found."
    return task_insight(task)


def cmd_suggest(state: AppState, args: list[str], user_id: str, emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[AI] Thinking...")
    return task_api.suggest_next(state, user_id)


def cmd_recs(state: AppState, args: list[str], user_id: str) -> str:
    """/recs -> unseen AI recommendations (marks them as shown)."""
    recs = state.task_store.list_recommendations(user_id, only_unshown=True)
    if not recs:
        return "No new recommendations."
    lines = []
    for r in recs:
        lines.append(f"- ({r.recommendation_type}) {r.content}")
        state.task_store.mark_recommendation_shown(user_id, r.id)
    return "\n".join(lines)


def cmd_voice(state: AppState, args: list[str], user_id: str, emit: CommandEmitter | None = None) -> str:
    """/voice <transcript> -> parse a spoken command and apply it."""
    transcript = " ".join(args).strip()
    if not transcript:
        return "Usage: /voice <what you said>"
    if emit:
        emit("[AI] Parsing voice command...")
    command = RecommendationClient(state.llm).parse_voice_command(transcript)
    return task_api.apply_voice_command(state, user_id, command)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show current user / AI status.")
registry.register("add", cmd_add, help_text="Create a task: /add <title> [!1-4] [#category] [@YYYY-MM-DD].")
registry.register(
    "list", cmd_list, help_text=f"List tasks: /list [{'|'.join((CATEGORY_ALL, *CATEGORIES))}].", aliases=["ls"]
)
registry.register("show", cmd_show, help_text="Task details: /show <task_id>.")
registry.register("done", cmd_done, help_text="Toggle completed: /done <task_id>.")
registry.register("start", cmd_start, help_text="Mark in progress: /start <task_id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <task_id>.", aliases=["rm"])
registry.register("sub", cmd_sub, help_text="Add a subtask: /sub <task_id> <title>.")
registry.register("subdone", cmd_subdone, help_text="Toggle a subtask: /subdone <subtask_id>.")
registry.register("attach", cmd_attach, help_text="Attach a file link: /attach <task_id> <name> <type> <url> [size].")
registry.register("streak", cmd_streak, help_text="Show your completion streak.")
registry.register("stats", cmd_stats, help_text="Task statistics.")
registry.register("insight", cmd_insight, help_text="Quick tip for a task: /insight <task_id>.")
registry.register("suggest", cmd_suggest, help_text="Ask the AI what to focus on next.")
registry.register("recs", cmd_recs, help_text="Show new AI recommendations.")
registry.register("voice", cmd_voice, help_text="Run a spoken command: /voice <transcript>.")
