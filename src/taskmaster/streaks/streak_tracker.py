# src/taskmaster/streaks/streak_tracker.py

"""
Streak bookkeeping for task completions.

Pure functions only: reading/writing the record belongs to the store.

Rules:
- first completion ever -> current=1, longest=1, total=1
- another completion on the same calendar day -> only total grows
- completion on any other day -> current+1 (longest follows), total+1

A skipped day does NOT reset the current streak.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo


@dataclass(frozen=True, slots=True)
class StreakRecord:
    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    last_completed_date: date | None = None
    total_tasks_completed: int = 0

    def validate(self) -> StreakRecord:
        if not self.user_id:
            raise ValueError("user_id is required")
        for name in ("current_streak", "longest_streak", "total_tasks_completed"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.longest_streak < self.current_streak:
            raise ValueError("longest_streak must be >= current_streak")
        return self


def update_on_completion(
    user_id: str,
    existing: StreakRecord | None,
    today: date,
) -> StreakRecord:
    """
    Return `user_id`'s streak record after one completion recorded on `today`.

    `existing` is None for a user who has never completed a task.
    """
    if existing is None:
        return StreakRecord(
            user_id=user_id,
            current_streak=1,
            longest_streak=1,
            last_completed_date=today,
            total_tasks_completed=1,
        )

    total = existing.total_tasks_completed + 1

    if existing.last_completed_date == today:
        return replace(existing, total_tasks_completed=total)

    current = existing.current_streak + 1
    return replace(
        existing,
        current_streak=current,
        longest_streak=max(existing.longest_streak, current),
        last_completed_date=today,
        total_tasks_completed=total,
    )


def resolve_timezone(name: str | None) -> tzinfo | None:
    """
    "utc"/"" -> UTC, "local" -> None (system local time), anything else -> IANA zone.
    """
    s = (name or "").strip()
    if not s or s.lower() == "utc":
        return timezone.utc
    if s.lower() == "local":
        return None
    return ZoneInfo(s)


def today_in(tz_name: str | None, *, now: datetime | None = None) -> date:
    """Calendar date used for streak comparisons."""
    tz = resolve_timezone(tz_name)
    if now is None:
        now = datetime.now(timezone.utc)
    if tz is None:
        return now.astimezone().date()
    return now.astimezone(tz).date()
