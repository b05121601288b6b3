from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from ..auth import require_identity
from ..container import get_credential_store, get_session_issuer
from ..credentials import CredentialStore
from ..errors import InvalidInput
from ..schemas import AuthResponse, ErrorOut, LoginRequest, ProfileOut, RegisterRequest
from ..sessions import SessionClaims, SessionIssuer
from ..utils import public_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account and return a bearer token for it.",
    responses={400: {"model": ErrorOut, "description": "Missing fields, weak password, bad or duplicate email"}},
)
def register(
    payload: RegisterRequest,
    store: CredentialStore = Depends(get_credential_store),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> AuthResponse:
    user = store.register(payload.name, payload.email, payload.password)
    token = issuer.issue(user["id"], user["email"])
    return AuthResponse(user=public_user(user), token=token, message="User registered successfully")


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login",
    description="Exchange email and password for a bearer token.",
    responses={
        400: {"model": ErrorOut, "description": "Email or password missing"},
        401: {"model": ErrorOut, "description": "Invalid email or password"},
    },
)
def login(
    payload: LoginRequest,
    store: CredentialStore = Depends(get_credential_store),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> AuthResponse:
    if not payload.email or not payload.password:
        raise InvalidInput("Email and password are required")
    user = store.verify(payload.email, payload.password)
    token = issuer.issue(user["id"], user["email"])
    logger.info("User %s logged in", user["id"])
    return AuthResponse(user=public_user(user), token=token, message="Login successful")


# PUBLIC_INTERFACE
@router.get(
    "/profile",
    response_model=ProfileOut,
    summary="Profile",
    description="Return the authenticated user's account details.",
    responses={
        401: {"model": ErrorOut, "description": "Missing or expired token"},
        403: {"model": ErrorOut, "description": "Malformed or forged token"},
        404: {"model": ErrorOut, "description": "User no longer exists"},
    },
)
def profile(
    identity: SessionClaims = Depends(require_identity),
    store: CredentialStore = Depends(get_credential_store),
) -> ProfileOut:
    user = store.find_by_id(identity.user_id)
    return ProfileOut(user=public_user(user, include_created=True))
