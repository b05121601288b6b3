"""
Composition root: builds the services a running app shares and exposes them
to endpoints as FastAPI dependencies.

One ``Services`` instance lives on ``app.state.services``; ``create_app``
builds it from settings unless a test hands in its own repositories.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from argon2 import PasswordHasher
from fastapi import Request

from .credentials import CredentialStore
from .repositories import TaskRepository, UserRepository, build_repositories
from .sessions import SessionIssuer
from .settings import Settings


@dataclass
class Services:
    settings: Settings
    credentials: CredentialStore
    tasks: TaskRepository
    issuer: SessionIssuer
    started_at: float = field(default_factory=time.monotonic)

    def uptime(self) -> float:
        return time.monotonic() - self.started_at


# PUBLIC_INTERFACE
def build_services(
    settings: Settings,
    users: Optional[UserRepository] = None,
    tasks: Optional[TaskRepository] = None,
    issuer: Optional[SessionIssuer] = None,
    hasher: Optional[PasswordHasher] = None,
) -> Services:
    """Wire repositories, the credential store and the session issuer together."""
    if users is None or tasks is None:
        default_users, default_tasks = build_repositories(settings)
        users = default_users if users is None else users
        tasks = default_tasks if tasks is None else tasks
    return Services(
        settings=settings,
        credentials=CredentialStore(users, hasher=hasher),
        tasks=tasks,
        issuer=issuer or SessionIssuer(settings.jwt_secret, ttl=timedelta(hours=settings.token_ttl_hours)),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_credential_store(request: Request) -> CredentialStore:
    return get_services(request).credentials


def get_task_repository(request: Request) -> TaskRepository:
    return get_services(request).tasks


def get_session_issuer(request: Request) -> SessionIssuer:
    return get_services(request).issuer
