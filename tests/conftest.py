# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskmaster.core.state import AppState
from taskmaster.tasks.task_store import TaskStore

from .fakes import FakeLLMClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the service layer.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="taskmaster-test",
        user_id="alice",
        streak_timezone="utc",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        llm_models=["fake-model"],
        list_limit=500,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, llm: FakeLLMClient) -> AppState:
    """
    AppState wired with a deterministic LLM fake.

    NOTE: the SQLite store is real because its per-user scoping is part of
    what we want to test.
    """
    return AppState(settings=settings, llm=llm, task_store=store)
