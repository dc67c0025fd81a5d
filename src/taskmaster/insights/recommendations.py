# src/taskmaster/insights/recommendations.py

"""
AI recommendation helpers on top of an LLMClient.

Contract:
- generate() never raises: failures turn into a fixed fallback string
- parse_voice_command() never raises: anything unparseable is VoiceCommand(action="unknown")
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any

from ..core.ports import LLMClient
from ..streaks.streak_tracker import StreakRecord
from ..tasks.task_models import Priority, Task

logger = logging.getLogger(__name__)

NO_RECOMMENDATION = "No recommendation available"
GENERATION_FAILED = "Unable to generate recommendation at this time"

SYSTEM_PROMPT = (
    "You are the assistant of a personal task manager. "
    "Answer briefly and follow the requested output format exactly."
)

VOICE_COMMAND_PROMPT = """Parse this voice command for task management and return JSON only:
"{transcript}"

Return format:
{{
  "action": "create|complete|update|unknown",
  "taskTitle": "extracted task title",
  "priority": 1-4 (1=critical, 2=high, 3=medium, 4=low),
  "dueDate": "YYYY-MM-DD format if mentioned"
}}"""

TASK_INSIGHTS: tuple[str, ...] = (
    "💡 Break this task into smaller steps for better progress tracking.",
    "⏰ Consider setting a reminder 30 minutes before the deadline.",
    "🎯 Focus on completing this task during your most productive hours.",
    "📊 This task aligns well with your weekly goals.",
    "✨ You're making great progress! Keep up the momentum.",
)


class VoiceAction(StrEnum):
    CREATE = "create"
    COMPLETE = "complete"
    UPDATE = "update"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class VoiceCommand:
    action: VoiceAction = VoiceAction.UNKNOWN
    task_title: str | None = None
    priority: Priority | None = None
    due_date: date | None = None


def _extract_json_object(raw: str) -> str | None:
    """First '{' .. last '}' span, or None when there is no such span."""
    first = raw.find("{")
    last = raw.rfind("}")
    if first == -1 or last <= first:
        return None
    return raw[first : last + 1]


def _coerce_priority(v: Any) -> Priority | None:
    if v is None or isinstance(v, bool):
        return None
    try:
        return Priority.parse(v)
    except (TypeError, ValueError):
        return None


def _coerce_date(v: Any) -> date | None:
    if not isinstance(v, str) or not v.strip():
        return None
    try:
        return date.fromisoformat(v.strip()[:10])
    except ValueError:
        return None


def voice_command_from_json(data: Any) -> VoiceCommand:
    if not isinstance(data, dict):
        return VoiceCommand()
    try:
        action = VoiceAction(str(data.get("action") or "").strip().lower())
    except ValueError:
        return VoiceCommand()
    if action is VoiceAction.UNKNOWN:
        return VoiceCommand()

    title = data.get("taskTitle")
    title = title.strip() if isinstance(title, str) and title.strip() else None

    return VoiceCommand(
        action=action,
        task_title=title,
        priority=_coerce_priority(data.get("priority")),
        due_date=_coerce_date(data.get("dueDate")),
    )


class RecommendationClient:
    """Thin prompt -> text wrapper with fixed fallbacks."""

    def __init__(self, llm: LLMClient, *, system_prompt: str = SYSTEM_PROMPT) -> None:
        self._llm = llm
        self._system_prompt = system_prompt

    def generate(self, prompt: str) -> str:
        raw = ""
        try:
            for piece in self._llm.stream_chat([{"role": "user", "content": prompt}], self._system_prompt):
                raw += piece
        except Exception:
            logger.exception("Recommendation generation failed.")
            return GENERATION_FAILED

        text = raw.strip()
        return text or NO_RECOMMENDATION

    def parse_voice_command(self, transcript: str) -> VoiceCommand:
        transcript = (transcript or "").strip()
        if not transcript:
            return VoiceCommand()

        response = self.generate(VOICE_COMMAND_PROMPT.format(transcript=transcript))
        blob = _extract_json_object(response)
        if blob is None:
            logger.debug("Voice command: no JSON in response=%r", response[:500])
            return VoiceCommand()

        try:
            data = json.loads(blob)
        except json.JSONDecodeError:
            logger.info("Voice command JSON parse failed. Raw=%r", blob[:500])
            return VoiceCommand()

        cmd = voice_command_from_json(data)
        logger.debug("Voice command parsed action=%s title=%r", cmd.action, cmd.task_title)
        return cmd

    def suggest(self, tasks: list[Task], streak: StreakRecord | None) -> str:
        return self.generate(build_suggestion_prompt(tasks, streak))


def build_suggestion_prompt(tasks: list[Task], streak: StreakRecord | None, *, max_tasks: int = 15) -> str:
    lines = [
        "Here are my open tasks (most urgent priority first).",
        "Suggest in 2-3 sentences what I should focus on next and why.",
        "",
    ]
    open_tasks = sorted((t for t in tasks if not t.is_completed), key=lambda t: (t.priority, t.created_at))
    for t in open_tasks[:max_tasks]:
        due = t.due_date.date().isoformat() if t.due_date else "none"
        lines.append(f"- [{t.priority.label}] {t.title} (category={t.category}, status={t.status}, due={due})")
    if not open_tasks:
        lines.append("- (no open tasks)")

    if streak is not None:
        lines.extend(
            [
                "",
                f"Current streak: {streak.current_streak} days, longest: {streak.longest_streak} days, "
                f"total completed: {streak.total_tasks_completed}.",
            ]
        )
    return "\n".join(lines)


def task_insight(task: Task | None, rng: random.Random | None = None) -> str:
    """Offline tip for the task detail view."""
    if task is None:
        return ""
    return (rng or random).choice(TASK_INSIGHTS)
