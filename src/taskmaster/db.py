from __future__ import annotations

import os
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generator, List

from .models import TaskEntity
from .repositories import Repository, utcnow

SQLITE_URL_PREFIX = "sqlite:///"


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    text: str = "text"
    created_at: str = "created_at"


_COLS = _Cols()


# PUBLIC_INTERFACE
def sqlite_path_from_url(url: str) -> str:
    """
    Extract the database file path from a sqlite URL.

    'sqlite:///data/tasks.db' -> 'data/tasks.db'
    'sqlite:////var/lib/tasks.db' -> '/var/lib/tasks.db'
    """
    if not url.lower().startswith(SQLITE_URL_PREFIX):
        raise ValueError(f"Not a sqlite URL: {url!r}")
    path = url[len(SQLITE_URL_PREFIX):]
    return path or "./data/tasks.db"


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.text} TEXT NOT NULL,
                    {_COLS.created_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_created_at ON {_COLS.table}({_COLS.created_at})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        created_at = datetime.fromisoformat(row[_COLS.created_at])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return {
            "id": str(row[_COLS.id]),
            "text": str(row[_COLS.text]),
            "created_at": created_at,
        }

    def create(self, text: str) -> TaskEntity:
        task_id = uuid.uuid4().hex
        now = utcnow().isoformat(timespec="microseconds")
        with self._conn() as conn:
            conn.execute(
                f"INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.text}, {_COLS.created_at}) VALUES (?, ?, ?)",
                (task_id, text, now),
            )
            row = conn.execute(
                f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,)
            ).fetchone()
            assert row is not None
            return self._row_to_entity(row)

    def list(self) -> List[TaskEntity]:
        with self._conn() as conn:
            # rowid breaks ties between identical timestamps in insertion order
            rows = conn.execute(
                f"SELECT * FROM {_COLS.table} ORDER BY {_COLS.created_at} ASC, rowid ASC"
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def delete(self, task_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,))
            return cur.rowcount > 0

    def ping(self) -> None:
        with self._conn() as conn:
            conn.execute("SELECT 1").fetchone()
