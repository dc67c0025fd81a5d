# tests/test_llm_client.py

from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from taskmaster.llm import client as llm_client
from taskmaster.llm.client import GeminiLLMClient, friendly_llm_error_message


class _FakeStream:
    def __init__(self, texts: list[str | None]) -> None:
        self._chunks = [
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=t))]) for t in texts
        ]
        self.closed = False

    def __iter__(self):
        return iter(self._chunks)

    def close(self) -> None:
        self.closed = True


class _FakeCompletions:
    def __init__(self, outcomes: dict[str, object]) -> None:
        self.outcomes = outcomes
        self.models: list[str] = []

    def create(self, *, model: str, **kwargs):
        self.models.append(model)
        outcome = self.outcomes[model]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(models: list[str], outcomes: dict[str, object]) -> tuple[GeminiLLMClient, _FakeCompletions]:
    settings = SimpleNamespace(gemini_api_key="k", llm_base_url="https://example.invalid/v1/", llm_models=models)
    c = GeminiLLMClient(settings)
    completions = _FakeCompletions(outcomes)
    c._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))  # type: ignore[assignment]
    return c, completions


def _status_error(cls: type[openai.APIStatusError], code: int) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://example.invalid/v1/chat/completions")
    return cls("error", response=httpx.Response(code, request=request), body=None)


@pytest.fixture(autouse=True)
def _reset_bad_models():
    llm_client._BAD_MODELS.clear()
    yield
    llm_client._BAD_MODELS.clear()


def test_falls_back_to_next_model_on_error() -> None:
    stream = _FakeStream(["Hel", None, "lo"])
    c, completions = _client(["a", "b"], {"a": RuntimeError("boom"), "b": stream})

    assert "".join(c.stream_chat([{"role": "user", "content": "hi"}], "sys")) == "Hello"
    assert completions.models == ["a", "b"]
    assert stream.closed


def test_not_found_model_is_skipped_afterwards() -> None:
    c, completions = _client(
        ["gone", "ok"],
        {"gone": _status_error(openai.NotFoundError, 404), "ok": _FakeStream(["x"])},
    )
    assert list(c.stream_chat([], "sys")) == ["x"]

    completions.outcomes["ok"] = _FakeStream(["y"])
    assert list(c.stream_chat([], "sys")) == ["y"]
    assert completions.models == ["gone", "ok", "ok"]


def test_auth_error_fails_fast() -> None:
    c, completions = _client(
        ["a", "b"],
        {"a": _status_error(openai.AuthenticationError, 401), "b": _FakeStream(["never"])},
    )
    with pytest.raises(RuntimeError, match="authentication failed"):
        list(c.stream_chat([], "sys"))
    assert completions.models == ["a"]


def test_all_models_failing_raises() -> None:
    c, _ = _client(["a", "b"], {"a": _FakeStream([]), "b": _status_error(openai.RateLimitError, 429)})
    with pytest.raises(RuntimeError, match="rate-limited"):
        list(c.stream_chat([], "sys"))


def test_constructor_requires_configuration() -> None:
    with pytest.raises(RuntimeError) as e:
        GeminiLLMClient(SimpleNamespace(gemini_api_key="", llm_base_url="u", llm_models=["m"]))
    assert "TASKMASTER_GEMINI_API_KEY" in friendly_llm_error_message(e.value)

    with pytest.raises(RuntimeError) as e2:
        GeminiLLMClient(SimpleNamespace(gemini_api_key="k", llm_base_url="u", llm_models=[" "]))
    assert "no models" in friendly_llm_error_message(e2.value)
