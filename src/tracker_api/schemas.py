from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import TaskEntity


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class RegisterRequest(CamelModel):
    """
    Registration payload. Presence and strength checks happen in the credential
    store so every failure gets a specific message.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "Ada", "email": "ada@example.com", "password": "secret1"}}
    )

    name: Optional[str] = Field(default=None, description="Display name")
    email: Optional[str] = Field(default=None, description="Email address (case-insensitive, unique)")
    password: Optional[str] = Field(default=None, description="Password, at least 6 characters")


# PUBLIC_INTERFACE
class LoginRequest(CamelModel):
    """Login payload."""

    model_config = ConfigDict(json_schema_extra={"example": {"email": "ada@example.com", "password": "secret1"}})

    email: Optional[str] = Field(default=None, description="Registered email address")
    password: Optional[str] = Field(default=None, description="Account password")


class UserOut(CamelModel):
    id: str = Field(..., description="Unique identifier of the user")
    name: str
    email: str


class ProfileUser(UserOut):
    created_at: datetime = Field(..., description="Registration timestamp")


class ProfileOut(CamelModel):
    user: ProfileUser


# PUBLIC_INTERFACE
class AuthResponse(CamelModel):
    """Returned by register and login: the public user view plus a bearer token."""

    user: UserOut
    token: str = Field(..., description="Bearer token, valid for 24 hours by default")
    message: str


# PUBLIC_INTERFACE
class TaskCreate(CamelModel):
    """
    Schema for creating a task. Status is checked against the allowed values by
    the endpoint; the title is trimmed and checked by the repository.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Plan sprint", "status": "pending"}})

    title: Optional[str] = Field(default=None, description="Task title; surrounding whitespace is removed")
    status: Optional[str] = Field(default=None, description="pending (default), in-progress or completed")


# PUBLIC_INTERFACE
class TaskUpdate(CamelModel):
    """
    Schema for updating a task.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"status": "completed"}})

    title: Optional[str] = Field(default=None, description="New title")
    status: Optional[str] = Field(default=None, description="New status")


# PUBLIC_INTERFACE
class TaskOut(CamelModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b6f7a3e-0d5e-4a55-9d6c-1c3c1c2f9a10",
                "userId": "5a0c2f1e-8b7d-4f0a-9a57-2e0c7b5d9e11",
                "title": "Plan sprint",
                "status": "pending",
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    user_id: str = Field(..., description="Identifier of the owning user")
    title: str
    status: str
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_entity(cls, task: TaskEntity) -> "TaskOut":
        return cls(
            id=task["id"],
            user_id=task["owner_id"],
            title=task["title"],
            status=task["status"],
            created_at=task["created_at"],
            updated_at=task["updated_at"],
        )


class TaskStatsOut(CamelModel):
    total: int
    pending: int
    in_progress: int
    completed: int


class TaskDeleted(CamelModel):
    message: str
    task_id: str


class HealthOut(CamelModel):
    status: str
    message: str
    timestamp: datetime
    uptime: float = Field(..., description="Seconds since the app started")
    users_count: int
    tasks_count: int
    backend: str
    using_default_secret: bool = Field(..., description="True when JWT_SECRET is not configured")


class ErrorOut(BaseModel):
    error: str = Field(..., description="Stable error code, e.g. InvalidInput or TokenExpired")
    message: str
    detail: Optional[List[Dict[str, Any]]] = None
