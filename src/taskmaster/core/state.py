# src/taskmaster/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from .ports import LLMClient, TaskRepo


@dataclass
class AppState:
    # Settings object (config.Settings or a test stand-in with the same attributes).
    settings: Any

    llm: LLMClient
    task_store: TaskRepo

    # Serializes console commands with any background work touching the store.
    lock: threading.RLock = field(default_factory=threading.RLock)

    @property
    def user_id(self) -> str:
        return str(getattr(self.settings, "user_id", "local") or "local")
