# src/taskmaster/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import IntEnum, StrEnum

CATEGORY_ALL = "All"
DEFAULT_CATEGORY = "Personal"
CATEGORIES: tuple[str, ...] = ("Work", "Personal", "Urgent", "Health", "Finance", "Other")


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class Priority(IntEnum):
    """
    Task priority: lower value = more urgent.

    Stored as an integer 1..4 in the database.
    """

    CRITICAL = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, raw: int | str | Priority | None) -> Priority:
        """Accept 1..4, "1".."4" or a label ("high", "Critical", ...)."""
        if raw is None:
            return cls.MEDIUM
        if isinstance(raw, str):
            s = raw.strip()
            if not s:
                return cls.MEDIUM
            if s.isdigit():
                raw = int(s)
            else:
                try:
                    return cls[s.upper()]
                except KeyError:
                    raise ValueError(f"unknown priority: {raw!r}") from None
        if isinstance(raw, float) and not raw.is_integer():
            raise ValueError(f"priority must be a whole number, got {raw!r}")
        try:
            return cls(int(raw))
        except (ValueError, OverflowError):
            raise ValueError(f"priority must be between 1 and 4, got {raw!r}") from None


class RecommendationType(StrEnum):
    SUGGESTION = "suggestion"
    INSIGHT = "insight"
    REMINDER = "reminder"

    @classmethod
    def from_db(cls, raw: str | None) -> RecommendationType:
        if not raw:
            return cls.SUGGESTION
        try:
            return cls(raw)
        except ValueError:
            return cls.SUGGESTION


def normalize_category(raw: str | None) -> str:
    """Map free text onto a known category (case-insensitive), else keep it trimmed."""
    s = (raw or "").strip()
    if not s:
        return DEFAULT_CATEGORY
    for c in CATEGORIES:
        if c.lower() == s.lower():
            return c
    return s


def category_matches(task_category: str, selected: str) -> bool:
    if not selected or selected.lower() == CATEGORY_ALL.lower():
        return True
    return (task_category or "").lower() == selected.lower()


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    user_id: str
    title: str
    description: str
    priority: Priority
    status: TaskStatus
    category: str

    due_date: datetime | None
    reminder_time: datetime | None

    time_estimate: int  # minutes
    time_spent: int  # minutes

    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED


@dataclass(frozen=True, slots=True)
class Subtask:
    id: int
    task_id: int
    title: str
    completed: bool
    order: int
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Attachment:
    id: int
    task_id: int
    file_name: str
    file_type: str
    file_url: str
    file_size: int
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Recommendation:
    id: int
    user_id: str
    task_id: int | None
    recommendation_type: RecommendationType
    content: str
    shown: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    in_progress: int

    @property
    def completion_rate(self) -> int:
        """Completed share in whole percent (0 when there are no tasks)."""
        if self.total <= 0:
            return 0
        pct = Decimal(self.completed * 100) / Decimal(self.total)
        return int(pct.quantize(Decimal(1), rounding=ROUND_HALF_UP))
