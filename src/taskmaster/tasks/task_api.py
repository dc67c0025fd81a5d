# src/taskmaster/tasks/task_api.py

"""
High-level task operations used by the front-ends.

Every function acts on behalf of one user_id and goes through state.task_store,
which enforces per-user visibility.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone

from ..core.state import AppState
from ..insights.recommendations import RecommendationClient, VoiceAction, VoiceCommand
from ..streaks.streak_tracker import StreakRecord, today_in, update_on_completion
from .task_models import (
    CATEGORY_ALL,
    Attachment,
    Priority,
    RecommendationType,
    Subtask,
    Task,
    TaskStats,
    TaskStatus,
    category_matches,
    normalize_category,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskDetails:
    task: Task
    subtasks: list[Subtask]
    attachments: list[Attachment]


def _streak_today(state: AppState) -> date:
    return today_in(getattr(state.settings, "streak_timezone", "utc"))


def _date_to_dt(d: date | datetime | None) -> datetime | None:
    if d is None or isinstance(d, datetime):
        return d
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


# ---- tasks ----


def create_task(
    state: AppState,
    user_id: str,
    title: str,
    *,
    description: str = "",
    priority: Priority | int | str | None = Priority.MEDIUM,
    category: str | None = None,
    due_date: date | datetime | None = None,
    reminder_time: datetime | None = None,
    time_estimate: int = 0,
) -> Task:
    title = (title or "").strip()
    if not title:
        raise ValueError("Please enter a task title")

    task_id = state.task_store.add_task(
        user_id,
        title=title,
        description=(description or "").strip(),
        priority=Priority.parse(priority),
        status=TaskStatus.PENDING,
        category=normalize_category(category),
        due_date=_date_to_dt(due_date),
        reminder_time=reminder_time,
        time_estimate=time_estimate,
    )
    task = state.task_store.get_task(user_id, task_id)
    if task is None:
        raise RuntimeError(f"Task {task_id} vanished right after insert")
    logger.info("Task created id=%s user=%s", task_id, user_id)
    return task


def list_tasks(state: AppState, user_id: str, category: str = CATEGORY_ALL) -> list[Task]:
    """Newest first; category "All" (or empty) disables the filter."""
    limit = int(getattr(state.settings, "list_limit", 500))
    tasks = state.task_store.list_tasks(user_id, limit=limit)
    return [t for t in tasks if category_matches(t.category, category)]


def get_task_details(state: AppState, user_id: str, task_id: int) -> TaskDetails | None:
    task = state.task_store.get_task(user_id, task_id)
    if task is None:
        return None
    return TaskDetails(
        task=task,
        subtasks=state.task_store.list_subtasks(user_id, task_id),
        attachments=state.task_store.list_attachments(user_id, task_id),
    )


def find_task_by_title(state: AppState, user_id: str, title: str, *, include_completed: bool = False) -> Task | None:
    """Exact (case-insensitive) title match first, then substring match; newest wins."""
    needle = (title or "").strip().lower()
    if not needle:
        return None
    tasks = [t for t in list_tasks(state, user_id) if include_completed or not t.is_completed]
    for t in tasks:
        if t.title.lower() == needle:
            return t
    for t in tasks:
        if needle in t.title.lower():
            return t
    return None


def record_completion(state: AppState, user_id: str, today: date | None = None) -> StreakRecord:
    """Count one completion towards the user's streak."""
    if today is None:
        today = _streak_today(state)
    return state.task_store.update_streak(
        user_id,
        lambda existing: update_on_completion(user_id, existing, today),
    )


def set_task_status(
    state: AppState,
    user_id: str,
    task_id: int,
    new_status: TaskStatus,
    *,
    today: date | None = None,
) -> Task | None:
    """
    Change status; moving into COMPLETED also records a streak completion.

    A failed streak update is logged and does not undo the status change.
    """
    task = state.task_store.get_task(user_id, task_id)
    if task is None:
        return None

    if not state.task_store.set_task_status(user_id, task_id, new_status, now_ts=time.time()):
        return None

    if new_status is TaskStatus.COMPLETED and task.status is not TaskStatus.COMPLETED:
        try:
            record_completion(state, user_id, today)
        except Exception:
            logger.exception("Error updating streak user=%s task_id=%s", user_id, task_id)

    return state.task_store.get_task(user_id, task_id)


def toggle_task_status(state: AppState, user_id: str, task_id: int, *, today: date | None = None) -> Task | None:
    """completed -> pending, anything else -> completed."""
    task = state.task_store.get_task(user_id, task_id)
    if task is None:
        return None
    new_status = TaskStatus.PENDING if task.is_completed else TaskStatus.COMPLETED
    return set_task_status(state, user_id, task_id, new_status, today=today)


def delete_task(state: AppState, user_id: str, task_id: int) -> bool:
    deleted = state.task_store.delete_task(user_id, task_id)
    if deleted:
        logger.info("Task deleted id=%s user=%s", task_id, user_id)
    return deleted


# ---- subtasks / attachments ----


def add_subtask(state: AppState, user_id: str, task_id: int, title: str) -> int:
    title = (title or "").strip()
    if not title:
        raise ValueError("Subtask title is required")
    return state.task_store.add_subtask(user_id, task_id, title)


def toggle_subtask(state: AppState, user_id: str, subtask_id: int) -> Subtask | None:
    return state.task_store.toggle_subtask(user_id, subtask_id)


def add_attachment(
    state: AppState,
    user_id: str,
    task_id: int,
    *,
    file_name: str,
    file_type: str,
    file_url: str,
    file_size: int = 0,
) -> int:
    return state.task_store.add_attachment(
        user_id,
        task_id,
        file_name=file_name,
        file_type=file_type,
        file_url=file_url,
        file_size=file_size,
    )


# ---- insights ----


def compute_stats(tasks: Iterable[Task]) -> TaskStats:
    total = completed = pending = in_progress = 0
    for t in tasks:
        total += 1
        if t.status is TaskStatus.COMPLETED:
            completed += 1
        elif t.status is TaskStatus.PENDING:
            pending += 1
        elif t.status is TaskStatus.IN_PROGRESS:
            in_progress += 1
    return TaskStats(total=total, completed=completed, pending=pending, in_progress=in_progress)


def task_stats(state: AppState, user_id: str) -> TaskStats:
    return compute_stats(state.task_store.list_tasks(user_id, limit=1_000_000))


def get_streak(state: AppState, user_id: str) -> StreakRecord:
    """Stored streak, or an all-zero record for users who never completed a task."""
    return state.task_store.get_streak(user_id) or StreakRecord(user_id=user_id)


def suggest_next(state: AppState, user_id: str) -> str:
    """Ask the LLM for a focus suggestion and keep it as a 'suggestion' recommendation."""
    client = RecommendationClient(state.llm)
    text = client.suggest(list_tasks(state, user_id), state.task_store.get_streak(user_id))
    try:
        state.task_store.add_recommendation(user_id, text, recommendation_type=RecommendationType.SUGGESTION)
    except Exception:
        logger.exception("Failed to store recommendation user=%s", user_id)
    return text


# ---- voice ----


def apply_voice_command(state: AppState, user_id: str, command: VoiceCommand, *, today: date | None = None) -> str:
    """Execute a parsed voice command and describe the outcome in one line."""
    if command.action is VoiceAction.UNKNOWN:
        return "Sorry, I didn't understand that command."

    if command.action is VoiceAction.CREATE:
        if not command.task_title:
            return "Please say the task title."
        task = create_task(
            state,
            user_id,
            command.task_title,
            priority=command.priority or Priority.MEDIUM,
            due_date=command.due_date,
        )
        return f"Created task #{task.id}: {task.title}"

    task = find_task_by_title(state, user_id, command.task_title or "")
    if task is None:
        return f"No open task matches {command.task_title!r}."

    if command.action is VoiceAction.COMPLETE:
        set_task_status(state, user_id, task.id, TaskStatus.COMPLETED, today=today)
        return f"Completed task #{task.id}: {task.title}"

    # UPDATE
    if command.priority is None and command.due_date is None:
        return f"Nothing to update for task #{task.id}."
    if command.priority is not None:
        state.task_store.update_task_fields(user_id, task.id, priority=command.priority)
    if command.due_date is not None:
        state.task_store.update_task_fields(user_id, task.id, due_date=_date_to_dt(command.due_date))
    return f"Updated task #{task.id}: {task.title}"
