from __future__ import annotations

import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Generator, List, Optional

from .errors import Conflict
from .models import TaskEntity, TaskStatus, UserEntity
from .repositories import (
    SORT_FIELDS,
    ListQuery,
    StatusInput,
    TaskRepository,
    TaskStats,
    UserRepository,
    clean_title,
    coerce_status,
    task_not_found,
)
from .utils import Clock, new_id, normalize_email, utcnow


@dataclass(frozen=True)
class _TaskCols:
    table: str = "tasks"
    seq: str = "seq"
    id: str = "id"
    owner_id: str = "owner_id"
    title: str = "title"
    status: str = "status"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    name: str = "name"
    email: str = "email"
    password_hash: str = "password_hash"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_T = _TaskCols()
_U = _UserCols()


def _ts(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


class _SQLiteStore(ABC):
    """Connection handling shared by the SQLite repositories."""

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._lock = RLock()
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

    @abstractmethod
    def _init_db(self) -> None:
        """Create the tables and indexes this store needs."""


class SQLiteUserRepository(_SQLiteStore, UserRepository):
    """
    SQLite-backed user store. Email uniqueness is enforced by a UNIQUE constraint.
    """

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_U.table} (
                    {_U.id} TEXT PRIMARY KEY,
                    {_U.name} TEXT NOT NULL,
                    {_U.email} TEXT NOT NULL UNIQUE,
                    {_U.password_hash} TEXT NOT NULL,
                    {_U.created_at} TEXT NOT NULL,
                    {_U.updated_at} TEXT NOT NULL
                )
                """
            )

    def _row_to_entity(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": str(row[_U.id]),
            "name": str(row[_U.name]),
            "email": str(row[_U.email]),
            "password_hash": str(row[_U.password_hash]),
            "created_at": datetime.fromisoformat(row[_U.created_at]),
            "updated_at": datetime.fromisoformat(row[_U.updated_at]),
        }

    def add(self, user: UserEntity) -> UserEntity:
        stored = user.copy()
        stored["email"] = normalize_email(user["email"])
        try:
            with self._conn() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {_U.table} ({_U.id}, {_U.name}, {_U.email}, {_U.password_hash},
                        {_U.created_at}, {_U.updated_at})
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        stored["id"],
                        stored["name"],
                        stored["email"],
                        stored["password_hash"],
                        _ts(stored["created_at"]),
                        _ts(stored["updated_at"]),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise Conflict() from exc
        return stored

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute(f"SELECT * FROM {_U.table} WHERE {_U.id} = ?", (user_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT * FROM {_U.table} WHERE {_U.email} = ?", (normalize_email(email),)
            ).fetchone()
            return self._row_to_entity(row) if row else None

    def count(self) -> int:
        with self._conn() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS cnt FROM {_U.table}").fetchone()
            return int(row["cnt"]) if row else 0


class SQLiteTaskRepository(_SQLiteStore, TaskRepository):
    """
    Lightweight SQLite repository implementing the TaskRepository interface.
    """

    def __init__(self, db_path: str, clock: Clock = utcnow) -> None:
        self._clock = clock
        super().__init__(db_path)

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.table} (
                    {_T.seq} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_T.id} TEXT NOT NULL UNIQUE,
                    {_T.owner_id} TEXT NOT NULL,
                    {_T.title} TEXT NOT NULL,
                    {_T.status} TEXT NOT NULL,
                    {_T.created_at} TEXT NOT NULL,
                    {_T.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_owner ON {_T.table}({_T.owner_id}, {_T.status})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_T.id]),
            "owner_id": str(row[_T.owner_id]),
            "title": str(row[_T.title]),
            "status": str(row[_T.status]),
            "created_at": datetime.fromisoformat(row[_T.created_at]),
            "updated_at": datetime.fromisoformat(row[_T.updated_at]),
        }

    def _fetch_owned(self, conn: sqlite3.Connection, owner_id: str, task_id: str) -> TaskEntity:
        row = conn.execute(
            f"SELECT * FROM {_T.table} WHERE {_T.id} = ? AND {_T.owner_id} = ?", (task_id, owner_id)
        ).fetchone()
        if not row:
            raise task_not_found()
        return self._row_to_entity(row)

    def list(self, owner_id: str, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        clauses = [f"{_T.owner_id} = ?"]
        params: list = [owner_id]

        if q.status is not None:
            clauses.append(f"{_T.status} = ?")
            params.append(q.status.value)

        # Timestamps are stored as UTC ISO-8601 text, which sorts chronologically
        field = q.sort if q.sort in SORT_FIELDS else "created_at"

        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_T.table}
                WHERE {' AND '.join(clauses)}
                ORDER BY {field} DESC, {_T.seq} DESC
                """,
                params,
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def create(self, owner_id: str, title: str, status: StatusInput = TaskStatus.PENDING) -> TaskEntity:
        title = clean_title(title)
        task_status = coerce_status(status).value
        with self._lock, self._conn() as conn:
            now = self._clock()
            entity: TaskEntity = {
                "id": new_id(),
                "owner_id": owner_id,
                "title": title,
                "status": task_status,
                "created_at": now,
                "updated_at": now,
            }
            conn.execute(
                f"""
                INSERT INTO {_T.table} ({_T.id}, {_T.owner_id}, {_T.title}, {_T.status},
                    {_T.created_at}, {_T.updated_at})
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (entity["id"], owner_id, entity["title"], entity["status"], _ts(now), _ts(now)),
            )
        return entity

    def update(
        self,
        owner_id: str,
        task_id: str,
        title: Optional[str] = None,
        status: Optional[StatusInput] = None,
    ) -> TaskEntity:
        with self._lock, self._conn() as conn:
            current = self._fetch_owned(conn, owner_id, task_id)

            new_title = clean_title(title) if title is not None else current["title"]
            new_status = coerce_status(status).value if status is not None else current["status"]
            updated_at = self._clock()
            conn.execute(
                f"""
                UPDATE {_T.table}
                SET {_T.title} = ?, {_T.status} = ?, {_T.updated_at} = ?
                WHERE {_T.id} = ? AND {_T.owner_id} = ?
                """,
                (new_title, new_status, _ts(updated_at), task_id, owner_id),
            )
            current.update(title=new_title, status=new_status, updated_at=updated_at)
            return current

    def delete(self, owner_id: str, task_id: str) -> None:
        with self._conn() as conn:
            cur = conn.execute(
                f"DELETE FROM {_T.table} WHERE {_T.id} = ? AND {_T.owner_id} = ?", (task_id, owner_id)
            )
            if cur.rowcount == 0:
                raise task_not_found()

    def count(self) -> int:
        with self._conn() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS cnt FROM {_T.table}").fetchone()
            return int(row["cnt"]) if row else 0

    def stats(self, owner_id: str) -> TaskStats:
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT {_T.status} AS status, COUNT(*) AS cnt FROM {_T.table}
                WHERE {_T.owner_id} = ?
                GROUP BY {_T.status}
                """,
                (owner_id,),
            ).fetchall()
        by_status = {str(r["status"]): int(r["cnt"]) for r in rows}
        return {
            "total": sum(by_status.values()),
            "pending": by_status.get(TaskStatus.PENDING.value, 0),
            "in_progress": by_status.get(TaskStatus.IN_PROGRESS.value, 0),
            "completed": by_status.get(TaskStatus.COMPLETED.value, 0),
        }
