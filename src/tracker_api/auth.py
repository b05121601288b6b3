from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from .container import get_session_issuer
from .errors import Forbidden, TokenExpired, Unauthenticated
from .sessions import SessionClaims, SessionIssuer, TokenFailure


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


# PUBLIC_INTERFACE
def authenticate(token: Optional[str], issuer: SessionIssuer) -> SessionClaims:
    """
    Resolve a bearer token to the caller's identity.

    Raises:
        Unauthenticated (401) if no token was presented.
        TokenExpired (401) if the token's validity window has passed.
        Forbidden (403) if the token is malformed or its signature does not match.
    """
    if not token:
        raise Unauthenticated()

    check = issuer.verify(token)
    if check.claims is not None:
        return check.claims
    if check.failure is TokenFailure.EXPIRED:
        raise TokenExpired()
    raise Forbidden()


# PUBLIC_INTERFACE
async def require_identity(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> SessionClaims:
    """
    FastAPI dependency guarding the profile and task endpoints.

    Usage:
        @router.get("/tasks")
        def list_tasks(identity: SessionClaims = Depends(require_identity)) ...
    """
    return authenticate(_extract_bearer_token(authorization), issuer)
