from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TypedDict


# PUBLIC_INTERFACE
class TaskStatus(str, Enum):
    """Lifecycle states a task can be in."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A registered account as held by a user repository.

    Fields:
    - id: Opaque unique identifier (uuid4 string)
    - name: Display name
    - email: Trimmed, lowercased address; unique across all users
    - password_hash: Argon2 hash of the password; never leaves the credential store
    - created_at / updated_at: UTC timestamps
    """

    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A task owned by exactly one user.

    Fields:
    - id: Opaque unique identifier (uuid4 string)
    - owner_id: UserEntity.id of the owner; set at creation, never changed
    - title: Non-empty trimmed title
    - status: One of TaskStatus values
    - created_at / updated_at: UTC timestamps
    """

    id: str
    owner_id: str
    title: str
    status: str
    created_at: datetime
    updated_at: datetime
