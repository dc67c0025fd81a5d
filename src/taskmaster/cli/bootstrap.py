# src/taskmaster/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (LLM / task store).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import LLMClient
from ..core.state import AppState
from ..llm.client import GeminiLLMClient
from ..llm.offline import OfflineLLMClient
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_llm_client(settings) -> LLMClient:
    try:
        return GeminiLLMClient(settings)
    except RuntimeError as e:
        # No key / no models: keep the app usable without AI.
        logger.info("AI features offline: %s", e)
        return OfflineLLMClient()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    return AppState(
        settings=settings,
        llm=create_llm_client(settings),
        task_store=TaskStore(settings.tasks_db_path),
    )
