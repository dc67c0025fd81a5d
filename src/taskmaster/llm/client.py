# src/taskmaster/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

# model -> retry_at (monotonic)
_BAD_MODELS: dict[str, float] = {}


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError is a subclass of APIConnectionError.
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "AI is not configured (missing API key). Set TASKMASTER_GEMINI_API_KEY in .env."
    if "LLM model list is empty" in msg:
        return "AI is not configured (no models). Set TASKMASTER_LLM_MODELS in .env."
    if "LLM base URL is not set" in msg:
        return "AI is not configured (missing base URL). Set TASKMASTER_LLM_BASE_URL in .env."
    return msg


class GeminiLLMClient:
    """
    OpenAI-compatible streaming client, pointed at Gemini's OpenAI endpoint by default.

    Behavior:
    - Tries models in the configured order (TASKMASTER_LLM_MODELS).
    - 404 (model not available) -> remember it for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast.
    - No automatic retries inside the SDK.
    """

    def __init__(self, settings: Any) -> None:
        api_key = getattr(settings, "gemini_api_key", None)
        base_url = str(getattr(settings, "llm_base_url", "") or "")

        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set TASKMASTER_GEMINI_API_KEY in your .env.")
        if not base_url.strip():
            raise RuntimeError("LLM base URL is not set. Set TASKMASTER_LLM_BASE_URL in your .env.")

        self._models: list[str] = [m.strip() for m in getattr(settings, "llm_models", []) or [] if m.strip()]
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set TASKMASTER_LLM_MODELS in your .env.")

        connect_s = float(getattr(settings, "llm_connect_timeout", 5.0))
        read_s = float(getattr(settings, "llm_read_timeout", 30.0))
        self._timeout = httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)

        self._client = OpenAI(
            base_url=base_url,
            api_key=str(api_key),
            timeout=self._timeout,
            max_retries=0,
        )

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = _BAD_MODELS.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", model)
            t0 = time.monotonic()
            used_any = False
            stream = None

            try:
                stream = self._client.chat.completions.create(
                    model=model,
                    stream=True,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                    timeout=self._timeout,
                )

                for chunk in stream:
                    if not chunk.choices:
                        continue
                    content = chunk.choices[0].delta.content
                    if content:
                        if not used_any:
                            logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    logger.debug("LLM: completed with model=%s", model)
                    return

                last_error = RuntimeError(f"Model returned no content: {model}")

            except Exception as e:
                # Once text has been yielded, switching models would splice two answers.
                if used_any:
                    raise

                last_error = e

                if _is_auth_error(e):
                    raise RuntimeError(
                        "LLM authentication failed. Check your API key (TASKMASTER_GEMINI_API_KEY)."
                    ) from e

                if _is_not_found_error(e):
                    _BAD_MODELS[model] = time.monotonic() + 3600.0
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            finally:
                if stream is not None:
                    stream.close()

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
            raise RuntimeError("All LLM models failed.") from last_error

        raise RuntimeError("All LLM models failed.")
