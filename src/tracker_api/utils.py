from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from .models import UserEntity

Clock = Callable[[], datetime]


# PUBLIC_INTERFACE
def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def new_id() -> str:
    """Return a fresh opaque identifier for users and tasks."""
    return str(uuid.uuid4())


# PUBLIC_INTERFACE
def normalize_email(email: str) -> str:
    """Trim and lowercase an email so lookups are case-insensitive."""
    return email.strip().lower()


# PUBLIC_INTERFACE
def public_user(user: UserEntity, include_created: bool = False) -> Dict[str, Any]:
    """
    Build the client-facing view of a user, dropping the password hash.

    Args:
        user: The stored user record.
        include_created: Also expose created_at (used by the profile endpoint).

    Returns:
        Dict with keys id, name, email and optionally created_at.
    """
    view: Dict[str, Any] = {"id": user["id"], "name": user["name"], "email": user["email"]}
    if include_created:
        view["created_at"] = user["created_at"]
    return view
