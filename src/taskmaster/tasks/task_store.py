# src/taskmaster/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Callable
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from ..streaks.streak_tracker import StreakRecord
from .task_models import (
    DEFAULT_CATEGORY,
    Attachment,
    Priority,
    Recommendation,
    RecommendationType,
    Subtask,
    Task,
    TaskStatus,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        priority INTEGER NOT NULL DEFAULT 3 CHECK (priority BETWEEN 1 AND 4),
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in_progress', 'completed')),
        category TEXT NOT NULL DEFAULT 'Personal',
        due_date REAL,
        reminder_time REAL,
        time_estimate INTEGER NOT NULL DEFAULT 0,
        time_spent INTEGER NOT NULL DEFAULT 0,
        completed_at REAL,
        created_at REAL NOT NULL,
        updated_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subtasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        "order" INTEGER NOT NULL DEFAULT 0,
        created_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS attachments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        file_name TEXT NOT NULL,
        file_type TEXT NOT NULL,
        file_url TEXT NOT NULL,
        file_size INTEGER NOT NULL DEFAULT 0,
        created_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS task_streaks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL UNIQUE,
        current_streak INTEGER NOT NULL DEFAULT 0,
        longest_streak INTEGER NOT NULL DEFAULT 0,
        last_completed_date TEXT,
        total_tasks_completed INTEGER NOT NULL DEFAULT 0,
        updated_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ai_recommendations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        task_id INTEGER REFERENCES tasks(id) ON DELETE CASCADE,
        recommendation_type TEXT NOT NULL DEFAULT 'suggestion'
            CHECK (recommendation_type IN ('suggestion', 'insight', 'reminder')),
        content TEXT NOT NULL,
        shown INTEGER NOT NULL DEFAULT 0,
        created_at REAL NOT NULL
    )
    """,
)

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date)",
    "CREATE INDEX IF NOT EXISTS idx_subtasks_task_id ON subtasks(task_id)",
    "CREATE INDEX IF NOT EXISTS idx_attachments_task_id ON attachments(task_id)",
    "CREATE INDEX IF NOT EXISTS idx_task_streaks_user_id ON task_streaks(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_ai_recommendations_user_id ON ai_recommendations(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_ai_recommendations_task_id ON ai_recommendations(task_id)",
    "CREATE INDEX IF NOT EXISTS idx_ai_recommendations_shown ON ai_recommendations(shown)",
)

# Columns added after the first schema version: (table, column, declaration).
_MIGRATIONS = (
    ("tasks", "reminder_time", "REAL"),
    ("tasks", "time_estimate", "INTEGER NOT NULL DEFAULT 0"),
    ("tasks", "time_spent", "INTEGER NOT NULL DEFAULT 0"),
    ("ai_recommendations", "shown", "INTEGER NOT NULL DEFAULT 0"),
)


def _ts_to_dt(ts: float | None) -> datetime | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


def _dt_to_ts(dt: datetime | None) -> float | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _date_from_db(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        logger.warning("Ignoring malformed last_completed_date=%r", raw)
        return None


class TaskStore:
    """
    SQLite store for tasks, subtasks, attachments, streaks and AI recommendations.

    Every public method takes the acting user_id. Rows owned by someone else
    behave as if they did not exist:
    - reads return None / []
    - updates and deletes return False
    - inserting a child row (subtask, attachment) under a foreign task raises PermissionError

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s", self._db_path)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            for ddl in _SCHEMA:
                cur.execute(ddl)

            # Migrations (safe): add missing columns.
            for table, name, decl in _MIGRATIONS:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    continue
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s.%s", table, name)

            for ddl in _INDEXES:
                cur.execute(ddl)
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _owns_task(conn: sqlite3.Connection, user_id: str, task_id: int) -> bool:
        row = conn.execute(
            "SELECT 1 FROM tasks WHERE id = ? AND user_id = ?",
            (int(task_id), user_id),
        ).fetchone()
        return row is not None

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        try:
            priority = Priority(int(row["priority"]))
        except (TypeError, ValueError):
            priority = Priority.MEDIUM
        return Task(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            priority=priority,
            status=TaskStatus.from_db(row["status"]),
            category=str(row["category"] or DEFAULT_CATEGORY),
            due_date=_ts_to_dt(row["due_date"]),
            reminder_time=_ts_to_dt(row["reminder_time"]),
            time_estimate=int(row["time_estimate"] or 0),
            time_spent=int(row["time_spent"] or 0),
            completed_at=_ts_to_dt(row["completed_at"]),
            created_at=_ts_to_dt(row["created_at"] or 0.0),  # type: ignore[arg-type]
            updated_at=_ts_to_dt(row["updated_at"] or 0.0),  # type: ignore[arg-type]
        )

    @staticmethod
    def _row_to_subtask(row: sqlite3.Row) -> Subtask:
        return Subtask(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            title=str(row["title"] or ""),
            completed=bool(row["completed"]),
            order=int(row["order"] or 0),
            created_at=_ts_to_dt(row["created_at"] or 0.0),  # type: ignore[arg-type]
        )

    @staticmethod
    def _row_to_attachment(row: sqlite3.Row) -> Attachment:
        return Attachment(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            file_name=str(row["file_name"]),
            file_type=str(row["file_type"]),
            file_url=str(row["file_url"]),
            file_size=int(row["file_size"] or 0),
            created_at=_ts_to_dt(row["created_at"] or 0.0),  # type: ignore[arg-type]
        )

    @staticmethod
    def _row_to_streak(row: sqlite3.Row) -> StreakRecord:
        return StreakRecord(
            user_id=str(row["user_id"]),
            current_streak=int(row["current_streak"] or 0),
            longest_streak=int(row["longest_streak"] or 0),
            last_completed_date=_date_from_db(row["last_completed_date"]),
            total_tasks_completed=int(row["total_tasks_completed"] or 0),
        )

    @staticmethod
    def _row_to_recommendation(row: sqlite3.Row) -> Recommendation:
        return Recommendation(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            task_id=int(row["task_id"]) if row["task_id"] is not None else None,
            recommendation_type=RecommendationType.from_db(row["recommendation_type"]),
            content=str(row["content"] or ""),
            shown=bool(row["shown"]),
            created_at=_ts_to_dt(row["created_at"] or 0.0),  # type: ignore[arg-type]
        )

    # ---- tasks ----

    def count_tasks(self, user_id: str) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks WHERE user_id = ?", (user_id,)).fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        user_id: str,
        *,
        title: str,
        description: str = "",
        priority: Priority | int = Priority.MEDIUM,
        status: TaskStatus = TaskStatus.PENDING,
        category: str = DEFAULT_CATEGORY,
        due_date: datetime | None = None,
        reminder_time: datetime | None = None,
        time_estimate: int = 0,
        time_spent: int = 0,
    ) -> int:
        if not user_id:
            raise ValueError("user_id is required")
        if not title or not title.strip():
            raise ValueError("title is required")

        prio = Priority.parse(priority)
        now = time.time()
        completed_at = now if status is TaskStatus.COMPLETED else None

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks(
                    user_id, title, description, priority, status, category,
                    due_date, reminder_time, time_estimate, time_spent,
                    completed_at, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    title.strip(),
                    (description or "").strip(),
                    int(prio),
                    status.value,
                    (category or DEFAULT_CATEGORY).strip(),
                    _dt_to_ts(due_date),
                    _dt_to_ts(reminder_time),
                    max(0, int(time_estimate)),
                    max(0, int(time_spent)),
                    completed_at,
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            logger.debug(
                "Task added id=%s user=%s priority=%s category=%s",
                task_id,
                user_id,
                int(prio),
                category,
            )
            return task_id
        finally:
            conn.close()

    def get_task(self, user_id: str, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
                (int(task_id), user_id),
            ).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_tasks(
        self,
        user_id: str,
        *,
        status: TaskStatus | None = None,
        category: str | None = None,
        limit: int = 500,
    ) -> list[Task]:
        """
        Tasks of one user, newest first.

        `category` compares case-insensitively; None means any category.
        """
        where = ["user_id = ?"]
        params: list[Any] = [user_id]
        if status is not None:
            where.append("status = ?")
            params.append(status.value)
        if category:
            where.append("LOWER(category) = LOWER(?)")
            params.append(category)
        params.append(int(limit))

        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"""
                SELECT *
                FROM tasks
                WHERE {' AND '.join(where)}
                ORDER BY created_at DESC, id DESC
                    LIMIT ?
                """,
                params,
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def update_task_fields(
        self,
        user_id: str,
        task_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
        priority: Priority | int | None = None,
        category: str | None = None,
        due_date: datetime | None = _UNSET,
        reminder_time: datetime | None = _UNSET,
        time_estimate: int | None = None,
        time_spent: int | None = None,
    ) -> bool:
        """
        Patch selected fields. due_date / reminder_time accept None to clear them.

        Returns False when the task does not exist for this user.
        """
        fields: list[str] = []
        params: list[Any] = []

        if title is not None:
            if not title.strip():
                raise ValueError("title cannot be empty")
            fields.append("title = ?")
            params.append(title.strip())

        if description is not None:
            fields.append("description = ?")
            params.append(description.strip())

        if priority is not None:
            fields.append("priority = ?")
            params.append(int(Priority.parse(priority)))

        if category is not None:
            fields.append("category = ?")
            params.append(category.strip() or DEFAULT_CATEGORY)

        if due_date is not _UNSET:
            fields.append("due_date = ?")
            params.append(_dt_to_ts(due_date))

        if reminder_time is not _UNSET:
            fields.append("reminder_time = ?")
            params.append(_dt_to_ts(reminder_time))

        if time_estimate is not None:
            fields.append("time_estimate = ?")
            params.append(max(0, int(time_estimate)))

        if time_spent is not None:
            fields.append("time_spent = ?")
            params.append(max(0, int(time_spent)))

        if not fields:
            return self.get_task(user_id, task_id) is not None

        fields.append("updated_at = ?")
        params.append(time.time())
        params.extend([int(task_id), user_id])

        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ? AND user_id = ?"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def set_task_status(
        self,
        user_id: str,
        task_id: int,
        new_status: TaskStatus,
        *,
        now_ts: float | None = None,
    ) -> bool:
        """Change status; completed_at is set on completion and cleared otherwise."""
        if now_ts is None:
            now_ts = time.time()
        completed_at = float(now_ts) if new_status is TaskStatus.COMPLETED else None

        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE tasks
                SET status = ?, completed_at = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (new_status.value, completed_at, float(now_ts), int(task_id), user_id),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_task(self, user_id: str, task_id: int) -> bool:
        """Delete a task together with its subtasks, attachments and recommendations."""
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM tasks WHERE id = ? AND user_id = ?",
                (int(task_id), user_id),
            )
            conn.commit()
            deleted = cur.rowcount == 1
            if deleted:
                logger.debug("Task deleted id=%s user=%s", task_id, user_id)
            return deleted
        finally:
            conn.close()

    # ---- subtasks ----

    def add_subtask(self, user_id: str, task_id: int, title: str, *, order: int | None = None) -> int:
        if not title or not title.strip():
            raise ValueError("title is required")

        conn = self._get_conn()
        try:
            if not self._owns_task(conn, user_id, task_id):
                raise PermissionError(f"task {task_id} is not accessible for user {user_id}")
            if order is None:
                (n,) = conn.execute(
                    "SELECT COUNT(*) FROM subtasks WHERE task_id = ?", (int(task_id),)
                ).fetchone()
                order = int(n)
            cur = conn.execute(
                'INSERT INTO subtasks(task_id, title, completed, "order", created_at) VALUES (?, ?, 0, ?, ?)',
                (int(task_id), title.strip(), int(order), time.time()),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for subtasks insert")
            return int(rowid)
        finally:
            conn.close()

    def list_subtasks(self, user_id: str, task_id: int) -> list[Subtask]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                SELECT s.*
                FROM subtasks s
                JOIN tasks t ON t.id = s.task_id
                WHERE s.task_id = ? AND t.user_id = ?
                ORDER BY s."order" ASC, s.id ASC
                """,
                (int(task_id), user_id),
            )
            return [self._row_to_subtask(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def set_subtask_completed(self, user_id: str, subtask_id: int, completed: bool) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE subtasks
                SET completed = ?
                WHERE id = ?
                  AND EXISTS (SELECT 1 FROM tasks t WHERE t.id = subtasks.task_id AND t.user_id = ?)
                """,
                (1 if completed else 0, int(subtask_id), user_id),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def toggle_subtask(self, user_id: str, subtask_id: int) -> Subtask | None:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE subtasks
                SET completed = 1 - completed
                WHERE id = ?
                  AND EXISTS (SELECT 1 FROM tasks t WHERE t.id = subtasks.task_id AND t.user_id = ?)
                """,
                (int(subtask_id), user_id),
            )
            conn.commit()
            if cur.rowcount != 1:
                return None
            row = conn.execute("SELECT * FROM subtasks WHERE id = ?", (int(subtask_id),)).fetchone()
            return self._row_to_subtask(row) if row else None
        finally:
            conn.close()

    def delete_subtask(self, user_id: str, subtask_id: int) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                DELETE FROM subtasks
                WHERE id = ?
                  AND EXISTS (SELECT 1 FROM tasks t WHERE t.id = subtasks.task_id AND t.user_id = ?)
                """,
                (int(subtask_id), user_id),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- attachments (metadata only) ----

    def add_attachment(
        self,
        user_id: str,
        task_id: int,
        *,
        file_name: str,
        file_type: str,
        file_url: str,
        file_size: int = 0,
    ) -> int:
        if not file_name or not file_type or not file_url:
            raise ValueError("file_name, file_type and file_url are required")

        conn = self._get_conn()
        try:
            if not self._owns_task(conn, user_id, task_id):
                raise PermissionError(f"task {task_id} is not accessible for user {user_id}")
            cur = conn.execute(
                """
                INSERT INTO attachments(task_id, file_name, file_type, file_url, file_size, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (int(task_id), file_name, file_type, file_url, max(0, int(file_size)), time.time()),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for attachments insert")
            return int(rowid)
        finally:
            conn.close()

    def list_attachments(self, user_id: str, task_id: int) -> list[Attachment]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                SELECT a.*
                FROM attachments a
                JOIN tasks t ON t.id = a.task_id
                WHERE a.task_id = ? AND t.user_id = ?
                ORDER BY a.created_at ASC, a.id ASC
                """,
                (int(task_id), user_id),
            )
            return [self._row_to_attachment(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def delete_attachment(self, user_id: str, attachment_id: int) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                DELETE FROM attachments
                WHERE id = ?
                  AND EXISTS (SELECT 1 FROM tasks t WHERE t.id = attachments.task_id AND t.user_id = ?)
                """,
                (int(attachment_id), user_id),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- streaks ----

    @staticmethod
    def _read_streak(conn: sqlite3.Connection, user_id: str) -> StreakRecord | None:
        row = conn.execute("SELECT * FROM task_streaks WHERE user_id = ?", (user_id,)).fetchone()
        return TaskStore._row_to_streak(row) if row else None

    @staticmethod
    def _write_streak(conn: sqlite3.Connection, record: StreakRecord) -> None:
        last = record.last_completed_date.isoformat() if record.last_completed_date else None
        conn.execute(
            """
            INSERT INTO task_streaks(
                user_id, current_streak, longest_streak,
                last_completed_date, total_tasks_completed, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                current_streak = excluded.current_streak,
                longest_streak = excluded.longest_streak,
                last_completed_date = excluded.last_completed_date,
                total_tasks_completed = excluded.total_tasks_completed,
                updated_at = excluded.updated_at
            """,
            (
                record.user_id,
                record.current_streak,
                record.longest_streak,
                last,
                record.total_tasks_completed,
                time.time(),
            ),
        )

    def get_streak(self, user_id: str) -> StreakRecord | None:
        conn = self._get_conn()
        try:
            return self._read_streak(conn, user_id)
        finally:
            conn.close()

    def put_streak(self, user_id: str, record: StreakRecord) -> None:
        if record.user_id != user_id:
            raise PermissionError("cannot write another user's streak")
        record.validate()

        conn = self._get_conn()
        try:
            self._write_streak(conn, record)
            conn.commit()
        finally:
            conn.close()

    def update_streak(
        self,
        user_id: str,
        fn: Callable[[StreakRecord | None], StreakRecord],
    ) -> StreakRecord:
        """
        Read-modify-write the user's streak in one IMMEDIATE transaction.

        `fn` receives the stored record (or None) and returns the new one.
        """
        conn = self._get_conn()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                new = fn(self._read_streak(conn, user_id))
                if new.user_id != user_id:
                    raise PermissionError("cannot write another user's streak")
                new.validate()
                self._write_streak(conn, new)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
            logger.debug(
                "Streak updated user=%s current=%s longest=%s total=%s",
                user_id,
                new.current_streak,
                new.longest_streak,
                new.total_tasks_completed,
            )
            return new
        finally:
            conn.close()

    # ---- AI recommendations ----

    def add_recommendation(
        self,
        user_id: str,
        content: str,
        *,
        recommendation_type: RecommendationType = RecommendationType.SUGGESTION,
        task_id: int | None = None,
    ) -> int:
        if not content or not content.strip():
            raise ValueError("content is required")

        conn = self._get_conn()
        try:
            if task_id is not None and not self._owns_task(conn, user_id, task_id):
                raise PermissionError(f"task {task_id} is not accessible for user {user_id}")
            cur = conn.execute(
                """
                INSERT INTO ai_recommendations(user_id, task_id, recommendation_type, content, shown, created_at)
                VALUES (?, ?, ?, ?, 0, ?)
                """,
                (
                    user_id,
                    int(task_id) if task_id is not None else None,
                    recommendation_type.value,
                    content.strip(),
                    time.time(),
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for ai_recommendations insert")
            return int(rowid)
        finally:
            conn.close()

    def list_recommendations(
        self,
        user_id: str,
        *,
        only_unshown: bool = False,
        task_id: int | None = None,
        limit: int = 20,
    ) -> list[Recommendation]:
        where = ["user_id = ?"]
        params: list[Any] = [user_id]
        if only_unshown:
            where.append("shown = 0")
        if task_id is not None:
            where.append("task_id = ?")
            params.append(int(task_id))
        params.append(int(limit))

        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"""
                SELECT *
                FROM ai_recommendations
                WHERE {' AND '.join(where)}
                ORDER BY created_at DESC, id DESC
                    LIMIT ?
                """,
                params,
            )
            return [self._row_to_recommendation(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def mark_recommendation_shown(self, user_id: str, recommendation_id: int) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE ai_recommendations SET shown = 1 WHERE id = ? AND user_id = ?",
                (int(recommendation_id), user_id),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
