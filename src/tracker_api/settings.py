from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

# Documented insecure fallback. Override with JWT_SECRET outside local development.
DEFAULT_JWT_SECRET = "task-tracker-insecure-default-secret-change-me"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - HOST: bind address for the HTTP server (default '0.0.0.0')
    - PORT: listening port (default 5000)
    - JWT_SECRET: HMAC secret used to sign session tokens (insecure default when unset)
    - TOKEN_TTL_HOURS: session token validity window in hours (default 24)
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tracker.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; the Vite dev server by default
    - LOG_LEVEL: root logging level (default 'INFO')
    """

    host: str
    port: int
    jwt_secret: str
    token_ttl_hours: int
    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    log_level: str

    @property
    def using_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    return Settings(
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_int(_get_env("PORT", "5000"), 5000),
        jwt_secret=_get_env("JWT_SECRET", DEFAULT_JWT_SECRET),
        token_ttl_hours=_parse_int(_get_env("TOKEN_TTL_HOURS", "24"), 24),
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tracker.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "http://localhost:5173")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
