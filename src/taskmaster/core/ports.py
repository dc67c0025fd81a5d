# src/taskmaster/core/ports.py

"""
Ports (interfaces) used by the service layer.

Services depend on Protocols instead of concrete implementations,
so the SQLite store and the LLM provider can be swapped out in tests.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Protocol

from ..streaks.streak_tracker import StreakRecord

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI-compatible)."""

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class StreakRepo(Protocol):
    def get_streak(self, user_id: str) -> StreakRecord | None: ...
    def put_streak(self, user_id: str, record: StreakRecord) -> None: ...
    def update_streak(
        self,
        user_id: str,
        fn: Callable[[StreakRecord | None], StreakRecord],
    ) -> StreakRecord: ...


class TaskRepo(StreakRepo, Protocol):
    def close(self) -> None: ...

    # Tasks
    def add_task(self, user_id: str, *, title: str, **fields: Any) -> int: ...
    def get_task(self, user_id: str, task_id: int) -> Any | None: ...
    def list_tasks(
        self,
        user_id: str,
        *,
        status: Any | None = None,
        category: str | None = None,
        limit: int = 500,
    ) -> list[Any]: ...
    def update_task_fields(self, user_id: str, task_id: int, **fields: Any) -> bool: ...
    def set_task_status(
        self,
        user_id: str,
        task_id: int,
        new_status: Any,
        *,
        now_ts: float | None = None,
    ) -> bool: ...
    def delete_task(self, user_id: str, task_id: int) -> bool: ...

    # Subtasks / attachments
    def add_subtask(self, user_id: str, task_id: int, title: str, *, order: int | None = None) -> int: ...
    def list_subtasks(self, user_id: str, task_id: int) -> list[Any]: ...
    def toggle_subtask(self, user_id: str, subtask_id: int) -> Any | None: ...
    def add_attachment(self, user_id: str, task_id: int, **fields: Any) -> int: ...
    def list_attachments(self, user_id: str, task_id: int) -> list[Any]: ...

    # AI recommendations
    def add_recommendation(self, user_id: str, content: str, **fields: Any) -> int: ...
    def list_recommendations(self, user_id: str, **filters: Any) -> list[Any]: ...
    def mark_recommendation_shown(self, user_id: str, recommendation_id: int) -> bool: ...

