"""
Error taxonomy shared by the credential store, session handling, task
repositories and HTTP handlers.

Every failure a client can observe is an ``ApiError`` subclass carrying the
HTTP status and a stable ``code``. ``main.py`` installs one exception handler
that renders them as ``{"error": code, "message": message}``.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Stable error codes for client-side handling."""

    INVALID_INPUT = "InvalidInput"
    CONFLICT = "Conflict"
    UNAUTHENTICATED = "Unauthenticated"
    INVALID_CREDENTIALS = "InvalidCredentials"
    TOKEN_EXPIRED = "TokenExpired"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    INTERNAL = "Internal"


class ApiError(Exception):
    """Base class for failures that map onto an HTTP error response."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL
    default_message: str = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, detail: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code.value, "message": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class InvalidInput(ApiError):
    status_code = 400
    code = ErrorCode.INVALID_INPUT
    default_message = "Request validation failed"


class Conflict(ApiError):
    # Duplicate registrations are reported as 400, like every other bad registration.
    status_code = 400
    code = ErrorCode.CONFLICT
    default_message = "User already exists with this email"


class Unauthenticated(ApiError):
    status_code = 401
    code = ErrorCode.UNAUTHENTICATED
    default_message = "Access token required"


class InvalidCredentials(Unauthenticated):
    code = ErrorCode.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class TokenExpired(Unauthenticated):
    code = ErrorCode.TOKEN_EXPIRED
    default_message = "Token expired"


class Forbidden(ApiError):
    status_code = 403
    code = ErrorCode.FORBIDDEN
    default_message = "Invalid token"


class NotFound(ApiError):
    status_code = 404
    code = ErrorCode.NOT_FOUND
    default_message = "Not found"
