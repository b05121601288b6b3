from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import List, Optional, TypedDict, Union

from .errors import Conflict, InvalidInput, NotFound
from .models import TaskEntity, TaskStatus, UserEntity
from .settings import Settings, get_settings
from .utils import Clock, new_id, normalize_email, utcnow

StatusInput = Union[TaskStatus, str]

SORT_FIELDS = ("created_at", "updated_at")


class TaskStats(TypedDict):
    total: int
    pending: int
    in_progress: int
    completed: int


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing a user's tasks.
    """
    status: Optional[TaskStatus] = None
    sort: str = "created_at"  # allowed: created_at, updated_at (always newest first)


def clean_title(title: Optional[str]) -> str:
    """Trim a task title, rejecting titles that are empty afterwards."""
    stripped = (title or "").strip()
    if not stripped:
        raise InvalidInput("Task title is required")
    return stripped


def coerce_status(status: StatusInput) -> TaskStatus:
    try:
        return TaskStatus(status)
    except ValueError as exc:
        raise InvalidInput("Status must be pending, in-progress, or completed") from exc


def task_not_found() -> NotFound:
    return NotFound("Task not found")


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract storage contract for user accounts."""

    @abstractmethod
    def add(self, user: UserEntity) -> UserEntity:
        """Store a new user. Raise Conflict if the email is already registered."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserEntity]:
        """Return a user by id, or None if not found."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a user by (case-insensitive) email, or None if not found."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of registered users."""


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Abstract repository contract for task storage backends.

    Every operation is scoped to an owner: a task that exists but belongs to
    someone else behaves exactly like a task that does not exist.
    """

    @abstractmethod
    def list(self, owner_id: str, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        """
        Return the owner's tasks.
        - Filter by status when query.status is set
        - Ordered newest first by query.sort, ties broken by most recent insertion
        """

    @abstractmethod
    def create(self, owner_id: str, title: str, status: StatusInput = TaskStatus.PENDING) -> TaskEntity:
        """Create and return a new task. Raise InvalidInput for a blank title."""

    @abstractmethod
    def update(
        self,
        owner_id: str,
        task_id: str,
        title: Optional[str] = None,
        status: Optional[StatusInput] = None,
    ) -> TaskEntity:
        """Apply the provided fields to the owner's task. Raise NotFound if there is no such task."""

    @abstractmethod
    def delete(self, owner_id: str, task_id: str) -> None:
        """Delete the owner's task. Raise NotFound if there is no such task."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of tasks across all owners."""

    def stats(self, owner_id: str) -> TaskStats:
        """Count the owner's tasks in total and per status."""
        tasks = self.list(owner_id)
        by_status = {s.value: 0 for s in TaskStatus}
        for t in tasks:
            by_status[t["status"]] += 1
        return {
            "total": len(tasks),
            "pending": by_status[TaskStatus.PENDING.value],
            "in_progress": by_status[TaskStatus.IN_PROGRESS.value],
            "completed": by_status[TaskStatus.COMPLETED.value],
        }


class InMemoryUserRepository(UserRepository):
    """
    Thread-safe in-memory user store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._users: dict[str, UserEntity] = {}
        self._by_email: dict[str, str] = {}

    def add(self, user: UserEntity) -> UserEntity:
        email = normalize_email(user["email"])
        with self._lock:
            if email in self._by_email:
                raise Conflict()
            stored = user.copy()
            stored["email"] = email
            self._users[stored["id"]] = stored
            self._by_email[email] = stored["id"]
            return stored.copy()

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._users.get(user_id)
            return None if user is None else user.copy()

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._lock:
            user_id = self._by_email.get(normalize_email(email))
            return None if user_id is None else self._users[user_id].copy()

    def count(self) -> int:
        with self._lock:
            return len(self._users)


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory task repository suitable for testing and default runtime.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._lock = RLock()
        self._clock = clock
        self._items: dict[str, TaskEntity] = {}
        # insertion sequence, used to order tasks with identical timestamps
        self._seq: dict[str, int] = {}
        self._next_seq = 1

    def _now(self) -> datetime:
        return self._clock()

    def _owned(self, owner_id: str, task_id: str) -> TaskEntity:
        existing = self._items.get(task_id)
        if existing is None or existing["owner_id"] != owner_id:
            raise task_not_found()
        return existing

    def list(self, owner_id: str, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        field = q.sort if q.sort in SORT_FIELDS else "created_at"
        with self._lock:
            items = [t for t in self._items.values() if t["owner_id"] == owner_id]
            if q.status is not None:
                items = [t for t in items if t["status"] == q.status.value]
            items.sort(key=lambda t: (t[field], self._seq[t["id"]]), reverse=True)
            # Return copies to avoid external mutation
            return [t.copy() for t in items]

    def create(self, owner_id: str, title: str, status: StatusInput = TaskStatus.PENDING) -> TaskEntity:
        title = clean_title(title)
        task_status = coerce_status(status).value
        with self._lock:
            now = self._now()
            entity: TaskEntity = {
                "id": new_id(),
                "owner_id": owner_id,
                "title": title,
                "status": task_status,
                "created_at": now,
                "updated_at": now,
            }
            self._items[entity["id"]] = entity
            self._seq[entity["id"]] = self._next_seq
            self._next_seq += 1
            return entity.copy()

    def update(
        self,
        owner_id: str,
        task_id: str,
        title: Optional[str] = None,
        status: Optional[StatusInput] = None,
    ) -> TaskEntity:
        with self._lock:
            existing = self._owned(owner_id, task_id)

            # Update only provided fields
            updated = existing.copy()
            if title is not None:
                updated["title"] = clean_title(title)
            if status is not None:
                updated["status"] = coerce_status(status).value
            updated["updated_at"] = self._now()

            self._items[task_id] = updated
            return updated.copy()

    def delete(self, owner_id: str, task_id: str) -> None:
        with self._lock:
            self._owned(owner_id, task_id)
            del self._items[task_id]
            del self._seq[task_id]

    def count(self) -> int:
        with self._lock:
            return len(self._items)


# PUBLIC_INTERFACE
def build_repositories(settings: Optional[Settings] = None) -> tuple[UserRepository, TaskRepository]:
    """
    Factory returning the configured (users, tasks) repositories.
    - memory: InMemoryUserRepository / InMemoryTaskRepository
    - sqlite: SQLiteUserRepository / SQLiteTaskRepository sharing one database file
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskRepository, SQLiteUserRepository

        return SQLiteUserRepository(settings.sqlite_db_path), SQLiteTaskRepository(settings.sqlite_db_path)
    return InMemoryUserRepository(), InMemoryTaskRepository()
