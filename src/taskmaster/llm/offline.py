# src/taskmaster/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Offline deterministic LLM client used when no API key is configured.

    Behavior:
    - Voice command prompts -> {"action": "unknown"}
    - Anything else -> a short notice that AI features are offline
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        if "parse this voice command" in user_text.lower():
            yield '{"action": "unknown"}'
            return

        yield (
            "AI insights are offline: no API key is configured. "
            "Set TASKMASTER_GEMINI_API_KEY to enable real recommendations."
        )
