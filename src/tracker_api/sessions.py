"""
Session issuer: mints and checks signed bearer tokens (HS256 JWTs).

Tokens are self-contained; nothing is stored server-side. ``verify`` never
raises for a bad token. It returns a ``TokenCheck`` that either holds the
claims or says why the token was rejected, so the authorization gate can
tell an expired session apart from a forged one.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt

from .utils import Clock, utcnow

JWT_ALGORITHM = "HS256"
DEFAULT_TTL = timedelta(hours=24)


class TokenFailure(str, Enum):
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenCheck:
    claims: Optional[SessionClaims] = None
    failure: Optional[TokenFailure] = None

    @property
    def ok(self) -> bool:
        return self.claims is not None


# PUBLIC_INTERFACE
class SessionIssuer:
    """
    Issue and verify session tokens signed with a process-wide secret.

    The injected clock only stamps ``iat``/``exp`` at issue time. ``verify``
    checks expiry against the wall clock, so an expired token is produced by
    issuing it with a clock set in the past.
    """

    def __init__(self, secret: str, ttl: timedelta = DEFAULT_TTL, clock: Clock = utcnow) -> None:
        self._secret = secret
        self._ttl = ttl
        self._clock = clock

    def issue(self, user_id: str, email: str) -> str:
        now = self._clock()
        payload = {
            "userId": user_id,
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str) -> TokenCheck:
        """Check the signature, then expiry. Valid only while now < exp."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            return TokenCheck(failure=TokenFailure.EXPIRED)
        except jwt.InvalidTokenError:
            return TokenCheck(failure=TokenFailure.INVALID)

        user_id = payload.get("userId")
        email = payload.get("email")
        if not isinstance(user_id, str) or not isinstance(email, str) or not user_id:
            return TokenCheck(failure=TokenFailure.INVALID)

        return TokenCheck(
            claims=SessionClaims(
                user_id=user_id,
                email=email,
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        )
