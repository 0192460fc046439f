"""SQLite database operations for the task API."""

import logging
import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Union

from .models import Task, TaskMetrics, TaskStatus

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "tasks.db"

NUMBER_RE = re.compile(r"\s*[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?\s*")

SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""


class TaskDatabase:
    """Single-connection SQLite handle holding the tasks table."""

    def __init__(self, db_path: Union[str, Path] = DEFAULT_DB_PATH):
        """Open the database and make sure the tasks table exists.

        Args:
            db_path: Path to SQLite database file, or ':memory:' for in-memory DB.

        Raises:
            sqlite3.Error: If the file cannot be opened or the table created.
        """
        self.db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = self._create_connection()
        self._init_db()

    def _create_connection(self) -> sqlite3.Connection:
        """Create the database connection shared by all requests."""
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _get_conn(self):
        """Yield the shared connection, committing on success."""
        if self._conn is None:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _init_db(self):
        """Initialize database schema."""
        with self._get_conn() as conn:
            conn.execute(SCHEMA)
        logger.info(f"Task database ready at {self.db_path}")

    def close(self):
        """Close the connection. Further calls fail with sqlite3.ProgrammingError."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        """Convert a database row to a Task model."""
        return Task(
            id=row["id"],
            title=row["title"],
            status=row["status"],
            created_at=row["created_at"],
        )

    def create_task(self, title: Any, status: Any) -> int:
        """Insert a task and return the ID the database assigned to it.

        Values are passed through as given; a missing title or status is
        rejected by the NOT NULL constraint.
        """
        with self._get_conn() as conn:
            cursor = conn.execute(
                "INSERT INTO tasks (title, status) VALUES (?, ?)",
                (title, status),
            )
            return cursor.lastrowid

    def update_task(self, task_id: Any, title: Any, status: Any) -> int:
        """Overwrite title and status of a task.

        Returns:
            Number of rows changed (0 when no task has that ID).
        """
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE tasks SET title = ?, status = ? WHERE id = ?",
                (title, status, task_id),
            )
            return cursor.rowcount

    def list_tasks(self, page: Any = 1, page_size: Any = 10) -> list[Task]:
        """Return one page of tasks in the engine's default row order.

        Args:
            page: 1-based page number.
            page_size: Maximum number of rows on a page.

        page_size is bound unconverted as the LIMIT. When either value is not
        numeric the offset is bound as NULL, which SQLite rejects.
        """
        offset = None
        page_number = _as_number(page)
        size_number = _as_number(page_size)
        if page_number is not None and size_number is not None:
            offset = (page_number - 1) * size_number
            if isinstance(offset, float) and offset.is_integer():
                offset = int(offset)

        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks LIMIT ? OFFSET ?",
                (page_size, offset),
            ).fetchall()
            return [self._row_to_task(row) for row in rows]

    def count_by_status(self, status: str) -> int:
        """Count tasks whose status equals ``status``."""
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM tasks WHERE status = ?",
                (status,),
            ).fetchone()
            return (row["total"] if row else 0) or 0

    def get_metrics(self) -> TaskMetrics:
        """Count open, in-progress and completed tasks.

        The three counts are separate statements issued in order; the first
        failing one raises and the rest are skipped. They do not share a
        transaction, so a concurrent write can land between them.
        """
        open_tasks = self.count_by_status(TaskStatus.OPEN.value)
        inprogress_tasks = self.count_by_status(TaskStatus.IN_PROGRESS.value)
        completed_tasks = self.count_by_status(TaskStatus.COMPLETED.value)
        return TaskMetrics(
            open_tasks=open_tasks,
            inprogress_tasks=inprogress_tasks,
            completed_tasks=completed_tasks,
        )

    def delete_task(self, task_id: Any) -> bool:
        """Delete a task.

        Args:
            task_id: The task ID. Strings are compared with SQLite's integer
                affinity, so "12" matches 12 and "1_2" matches nothing.

        Returns:
            True if deleted, False if not found.
        """
        with self._get_conn() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cursor.rowcount > 0


def _as_number(value: Any) -> Optional[Union[int, float]]:
    """Read a query value as a number, or None when it is not one.

    Blank strings count as 0. Integral values come back as int.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if not isinstance(value, str):
        return None
    if not value.strip():
        return 0
    if not NUMBER_RE.fullmatch(value):
        return None
    number = float(value)
    return int(number) if number.is_integer() else number
