# src/taskmaster/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the AI features degrade to offline mode).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfoNotFoundError

from dotenv import load_dotenv

from .streaks.streak_tracker import resolve_timezone

logger = logging.getLogger(__name__)

ENV_PREFIX = "TASKMASTER"

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_timezone(name: str, default: str = "utc") -> str:
    """Zone name for streak dates; unknown zones fall back to the default."""
    raw = _env(name, default).strip()
    try:
        resolve_timezone(raw)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone in %s: %r, using %r.", name, raw, default)
        return default
    return raw


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Session ----
    # Identity of the local user; every store query is scoped to it.
    user_id: str
    # "utc" (default), "local" or an IANA zone name, e.g. "Europe/Berlin".
    streak_timezone: str

    # ---- LLM (OpenAI-compatible endpoint, Gemini by default) ----
    gemini_api_key: str | None
    llm_base_url: str
    llm_models: list[str]
    llm_connect_timeout: float
    llm_read_timeout: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Limits ----
    list_limit: int

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "taskmaster")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        user_id = (_first_env(_k("USER_ID"), "USER", default="local") or "local").strip()
        streak_timezone = _env_timezone(_k("STREAK_TIMEZONE"))

        gemini_api_key = _first_env(_k("GEMINI_API_KEY"), "GEMINI_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), GEMINI_OPENAI_BASE_URL)
        llm_models = _env_list(_k("LLM_MODELS"), ["gemini-2.0-flash", "gemini-1.5-flash"])
        llm_connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        llm_read_timeout = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 30.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskmaster"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        list_limit = _env_int(_k("LIST_LIMIT"), 200)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            user_id=user_id,
            streak_timezone=streak_timezone,
            gemini_api_key=gemini_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            llm_connect_timeout=llm_connect_timeout,
            llm_read_timeout=llm_read_timeout,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            list_limit=list_limit,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
