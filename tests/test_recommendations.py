# tests/test_recommendations.py

from __future__ import annotations

import random
from datetime import date

from taskmaster.insights.recommendations import (
    GENERATION_FAILED,
    NO_RECOMMENDATION,
    TASK_INSIGHTS,
    RecommendationClient,
    VoiceAction,
    VoiceCommand,
    task_insight,
)
from taskmaster.llm.offline import OfflineLLMClient
from taskmaster.tasks import task_api
from taskmaster.tasks.task_models import Priority

from .fakes import ChunkedLLMClient, FakeLLMClient


def test_generate_returns_text_and_sends_prompt() -> None:
    llm = FakeLLMClient("  Do the hard thing first.  ")
    client = RecommendationClient(llm)
    assert client.generate("what next?") == "Do the hard thing first."
    messages, system_prompt = llm.calls[0]
    assert messages == [{"role": "user", "content": "what next?"}]
    assert system_prompt


def test_generate_joins_streamed_chunks() -> None:
    client = RecommendationClient(ChunkedLLMClient(["Plan ", "your ", "day."]))
    assert client.generate("x") == "Plan your day."


def test_generate_empty_response_uses_fallback() -> None:
    assert RecommendationClient(FakeLLMClient("   ")).generate("x") == NO_RECOMMENDATION


def test_generate_failure_uses_fallback() -> None:
    assert RecommendationClient(FakeLLMClient(error=RuntimeError("network down"))).generate("x") == GENERATION_FAILED
    # A failure mid-stream is still a failure.
    assert RecommendationClient(ChunkedLLMClient(["par"], error=ConnectionError())).generate("x") == GENERATION_FAILED


def test_parse_voice_command_extracts_json_from_chatty_reply() -> None:
    reply = (
        "Sure! Here is the JSON:\n"
        '```json\n{"action": "create", "taskTitle": "Buy groceries", "priority": 2, "dueDate": "2024-07-04"}\n```'
    )
    llm = FakeLLMClient(reply)
    cmd = RecommendationClient(llm).parse_voice_command("remind me to buy groceries on july fourth, high priority")
    assert cmd == VoiceCommand(
        action=VoiceAction.CREATE,
        task_title="Buy groceries",
        priority=Priority.HIGH,
        due_date=date(2024, 7, 4),
    )
    prompt = llm.calls[0][0][0]["content"]
    assert "remind me to buy groceries" in prompt
    assert '"action": "create|complete|update|unknown"' in prompt


def test_parse_voice_command_drops_invalid_fields() -> None:
    llm = FakeLLMClient('{"action": "COMPLETE", "taskTitle": "  ", "priority": 9, "dueDate": "tomorrow"}')
    cmd = RecommendationClient(llm).parse_voice_command("finish it")
    assert cmd == VoiceCommand(action=VoiceAction.COMPLETE)

    for raw in ("Infinity", "-Infinity", "NaN", "1e400", "2.5"):
        llm = FakeLLMClient('{"action": "create", "taskTitle": "x", "priority": ' + raw + "}")
        cmd = RecommendationClient(llm).parse_voice_command("add x")
        assert cmd == VoiceCommand(action=VoiceAction.CREATE, task_title="x"), raw


def test_parse_voice_command_unknown_cases() -> None:
    for reply in ("no json here", "{not json}", '{"action": "dance"}', '["create"]', '{"action": "unknown", "taskTitle": "x"}'):
        cmd = RecommendationClient(FakeLLMClient(reply)).parse_voice_command("something")
        assert cmd == VoiceCommand(), reply

    failing = RecommendationClient(FakeLLMClient(error=RuntimeError("boom")))
    assert failing.parse_voice_command("add task") == VoiceCommand()

    llm = FakeLLMClient('{"action": "create"}')
    assert RecommendationClient(llm).parse_voice_command("   ") == VoiceCommand()
    assert llm.calls == []


def test_offline_client_is_safe_for_voice_parsing() -> None:
    client = RecommendationClient(OfflineLLMClient())
    assert client.parse_voice_command("add a task to call bob") == VoiceCommand()
    assert "offline" in client.generate("any advice?")


def test_task_insight_picks_from_fixed_tips(state) -> None:
    t = task_api.create_task(state, "alice", "Gym")
    tip = task_insight(t, random.Random(7))
    assert tip in TASK_INSIGHTS
    assert task_insight(None) == ""
