"""
Credential store: user registration and password verification.

Passwords are hashed with Argon2 (argon2-cffi) before they reach a user
repository. Hashing is deliberately slow; HTTP handlers calling into this
module are plain ``def`` endpoints so FastAPI runs them in its threadpool.
"""
from __future__ import annotations

import logging
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from .errors import InvalidCredentials, InvalidInput, NotFound
from .models import UserEntity
from .repositories import UserRepository
from .utils import new_id, normalize_email, utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str, hasher: PasswordHasher) -> str:
    return hasher.hash(password)


def verify_password(password: str, password_hash: str, hasher: PasswordHasher) -> bool:
    try:
        return hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


# PUBLIC_INTERFACE
class CredentialStore:
    """Owns user records: registration, credential checks and lookups."""

    def __init__(self, users: UserRepository, hasher: Optional[PasswordHasher] = None) -> None:
        self._users = users
        self._hasher = hasher or PasswordHasher()
        # Compared against when the email is unknown so both failure paths hash once.
        self._dummy_hash = self._hasher.hash("not-a-real-password")

    def register(self, name: Optional[str], email: Optional[str], raw_password: Optional[str]) -> UserEntity:
        """
        Create a new user.

        Raises:
            InvalidInput: a field is missing, the password is shorter than 6
                characters, or the email has no '@'.
            Conflict: the email is already registered (case-insensitive).
        """
        if not (name and name.strip()) or not (email and email.strip()) or not raw_password:
            raise InvalidInput("All fields are required")
        if len(raw_password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if "@" not in email:
            raise InvalidInput("Valid email is required")

        now = utcnow()
        user: UserEntity = {
            "id": new_id(),
            "name": name.strip(),
            "email": normalize_email(email),
            "password_hash": hash_password(raw_password, self._hasher),
            "created_at": now,
            "updated_at": now,
        }
        stored = self._users.add(user)
        logger.info("Registered user %s", stored["id"])
        return stored

    def verify(self, email: Optional[str], raw_password: Optional[str]) -> UserEntity:
        """
        Return the user matching the credentials.

        Raises:
            InvalidCredentials: unknown email or wrong password (indistinguishable).
        """
        user = self._users.get_by_email(email) if email else None
        if user is None:
            verify_password(raw_password or "", self._dummy_hash, self._hasher)
            raise InvalidCredentials()
        if not verify_password(raw_password or "", user["password_hash"], self._hasher):
            raise InvalidCredentials()
        return user

    def find_by_id(self, user_id: str) -> UserEntity:
        user = self._users.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def count(self) -> int:
        return self._users.count()
