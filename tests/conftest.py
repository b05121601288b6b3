import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Tuple

import pytest
from argon2 import PasswordHasher
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from tracker_api.main import create_app  # noqa: E402
from tracker_api.repositories import InMemoryTaskRepository  # noqa: E402
from tracker_api.settings import Settings  # noqa: E402

TEST_SECRET = "test-signing-secret-with-at-least-32-bytes"

# Minimal Argon2 cost so registrations stay fast in tests.
FAST_HASHER = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


class FakeClock:
    """Deterministic clock that moves forward one second per reading."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def make_settings(**overrides) -> Settings:
    values = dict(
        host="127.0.0.1",
        port=5000,
        jwt_secret=TEST_SECRET,
        token_ttl_hours=24,
        persistence_backend="memory",
        sqlite_db_path="./data/test.db",
        cors_allow_origins=["http://localhost:5173"],
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def fast_hasher() -> PasswordHasher:
    return FAST_HASHER


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def app(clock):
    return create_app(make_settings(), tasks=InMemoryTaskRepository(clock=clock), hasher=FAST_HASHER)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def register(client) -> Callable[..., Tuple[dict, str]]:
    """Register a user through the API and return (user, token)."""

    def _register(name: str = "Ada", email: str = "ada@example.com", password: str = "secret1"):
        res = client.post("/api/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        body = res.json()
        return body["user"], body["token"]

    return _register
