# tests/test_task_api.py

from __future__ import annotations

from datetime import date

import pytest

from taskmaster.insights.recommendations import VoiceAction, VoiceCommand
from taskmaster.streaks.streak_tracker import StreakRecord
from taskmaster.tasks import task_api
from taskmaster.tasks.task_models import Priority, RecommendationType, TaskStats, TaskStatus


def test_create_task_defaults_and_validation(state) -> None:
    t = task_api.create_task(state, "alice", "  Buy milk ")
    assert t.title == "Buy milk"
    assert t.priority is Priority.MEDIUM
    assert t.category == "Personal"
    assert t.status is TaskStatus.PENDING

    t2 = task_api.create_task(state, "alice", "Ship it", priority="critical", category="work", due_date=date(2024, 5, 1))
    assert t2.priority is Priority.CRITICAL
    assert t2.category == "Work"
    assert t2.due_date is not None and t2.due_date.date() == date(2024, 5, 1)

    with pytest.raises(ValueError):
        task_api.create_task(state, "alice", "   ")


def test_list_tasks_category_filter(state) -> None:
    task_api.create_task(state, "alice", "a", category="Work")
    task_api.create_task(state, "alice", "b", category="Health")
    task_api.create_task(state, "bob", "c", category="Work")

    assert {t.title for t in task_api.list_tasks(state, "alice")} == {"a", "b"}
    assert {t.title for t in task_api.list_tasks(state, "alice", "All")} == {"a", "b"}
    assert [t.title for t in task_api.list_tasks(state, "alice", "work")] == ["a"]
    assert task_api.list_tasks(state, "alice", "Finance") == []


def test_toggle_completion_updates_streak(state) -> None:
    t = task_api.create_task(state, "alice", "Walk")

    done = task_api.toggle_task_status(state, "alice", t.id, today=date(2024, 1, 1))
    assert done is not None and done.is_completed
    assert done.completed_at is not None
    assert task_api.get_streak(state, "alice") == StreakRecord(
        "alice", current_streak=1, longest_streak=1, last_completed_date=date(2024, 1, 1), total_tasks_completed=1
    )

    reopened = task_api.toggle_task_status(state, "alice", t.id, today=date(2024, 1, 1))
    assert reopened is not None
    assert reopened.status is TaskStatus.PENDING
    assert reopened.completed_at is None
    # Reopening does not touch the streak.
    assert task_api.get_streak(state, "alice").total_tasks_completed == 1

    task_api.toggle_task_status(state, "alice", t.id, today=date(2024, 1, 1))
    s = task_api.get_streak(state, "alice")
    assert (s.current_streak, s.longest_streak, s.total_tasks_completed) == (1, 1, 2)


def test_completion_scenario_through_the_store(state) -> None:
    expected = [
        (date(2024, 1, 1), (1, 1, 1)),
        (date(2024, 1, 1), (1, 1, 2)),
        (date(2024, 1, 2), (2, 2, 3)),
        (date(2024, 1, 10), (3, 3, 4)),
    ]
    for day, (cur, longest, total) in expected:
        t = task_api.create_task(state, "alice", f"task for {day}")
        task_api.set_task_status(state, "alice", t.id, TaskStatus.COMPLETED, today=day)
        s = task_api.get_streak(state, "alice")
        assert (s.current_streak, s.longest_streak, s.total_tasks_completed) == (cur, longest, total)
        assert s.last_completed_date == day


def test_completing_an_already_completed_task_does_not_count_twice(state) -> None:
    t = task_api.create_task(state, "alice", "Once")
    task_api.set_task_status(state, "alice", t.id, TaskStatus.COMPLETED, today=date(2024, 1, 1))
    task_api.set_task_status(state, "alice", t.id, TaskStatus.COMPLETED, today=date(2024, 1, 2))
    assert task_api.get_streak(state, "alice").total_tasks_completed == 1


def test_streak_failure_does_not_fail_the_status_change(state, monkeypatch) -> None:
    t = task_api.create_task(state, "alice", "Fragile")

    def broken(user_id, fn):
        raise RuntimeError("db locked")

    monkeypatch.setattr(state.task_store, "update_streak", broken)
    done = task_api.toggle_task_status(state, "alice", t.id, today=date(2024, 1, 1))
    assert done is not None and done.is_completed


def test_other_users_task_is_not_found(state) -> None:
    t = task_api.create_task(state, "alice", "Mine")
    assert task_api.toggle_task_status(state, "bob", t.id) is None
    assert task_api.get_task_details(state, "bob", t.id) is None
    assert not task_api.delete_task(state, "bob", t.id)
    assert task_api.get_streak(state, "bob") == StreakRecord("bob")
    with pytest.raises(PermissionError):
        task_api.add_subtask(state, "bob", t.id, "intrude")


def test_task_details_and_subtasks(state) -> None:
    t = task_api.create_task(state, "alice", "Trip")
    s1 = task_api.add_subtask(state, "alice", t.id, "Book flight")
    task_api.add_subtask(state, "alice", t.id, "Pack")
    task_api.add_attachment(
        state, "alice", t.id, file_name="ticket.pdf", file_type="application/pdf", file_url="file:///ticket.pdf"
    )
    with pytest.raises(ValueError):
        task_api.add_subtask(state, "alice", t.id, "  ")

    sub = task_api.toggle_subtask(state, "alice", s1)
    assert sub is not None and sub.completed

    details = task_api.get_task_details(state, "alice", t.id)
    assert details is not None
    assert [s.title for s in details.subtasks] == ["Book flight", "Pack"]
    assert [a.file_name for a in details.attachments] == ["ticket.pdf"]


def test_stats(state) -> None:
    assert task_api.task_stats(state, "alice").completion_rate == 0

    ids = [task_api.create_task(state, "alice", f"t{i}").id for i in range(3)]
    task_api.set_task_status(state, "alice", ids[0], TaskStatus.COMPLETED, today=date(2024, 1, 1))
    task_api.set_task_status(state, "alice", ids[1], TaskStatus.IN_PROGRESS)

    st = task_api.task_stats(state, "alice")
    assert (st.total, st.completed, st.in_progress, st.pending) == (3, 1, 1, 1)
    assert st.completion_rate == 33

    # Halves round up.
    assert TaskStats(total=8, completed=1, pending=7, in_progress=0).completion_rate == 13
    assert TaskStats(total=8, completed=5, pending=3, in_progress=0).completion_rate == 63


def test_suggest_next_stores_recommendation(state, llm) -> None:
    llm.next_text = "Focus on the report first."
    task_api.create_task(state, "alice", "Report", priority=1)

    text = task_api.suggest_next(state, "alice")
    assert text == "Focus on the report first."

    recs = state.task_store.list_recommendations("alice", only_unshown=True)
    assert [r.content for r in recs] == ["Focus on the report first."]
    assert recs[0].recommendation_type is RecommendationType.SUGGESTION
    prompt = llm.calls[0][0][0]["content"]
    assert "[Critical] Report" in prompt


def test_apply_voice_create_complete_update(state) -> None:
    msg = task_api.apply_voice_command(
        state, "alice", VoiceCommand(VoiceAction.CREATE, "Call mom", Priority.HIGH, date(2024, 2, 1))
    )
    assert msg.startswith("Created task")
    t = task_api.find_task_by_title(state, "alice", "call MOM")
    assert t is not None
    assert t.priority is Priority.HIGH

    msg = task_api.apply_voice_command(state, "alice", VoiceCommand(VoiceAction.UPDATE, "call mom", Priority.LOW))
    assert msg.startswith("Updated task")
    t2 = state.task_store.get_task("alice", t.id)
    assert t2 is not None and t2.priority is Priority.LOW

    msg = task_api.apply_voice_command(
        state, "alice", VoiceCommand(VoiceAction.COMPLETE, "mom"), today=date(2024, 2, 1)
    )
    assert msg.startswith("Completed task")
    t3 = state.task_store.get_task("alice", t.id)
    assert t3 is not None and t3.is_completed
    assert task_api.get_streak(state, "alice").total_tasks_completed == 1


def test_apply_voice_unknown_and_missing(state) -> None:
    assert "didn't understand" in task_api.apply_voice_command(state, "alice", VoiceCommand())
    assert "title" in task_api.apply_voice_command(state, "alice", VoiceCommand(VoiceAction.CREATE))
    assert "No open task" in task_api.apply_voice_command(state, "alice", VoiceCommand(VoiceAction.COMPLETE, "ghost"))
