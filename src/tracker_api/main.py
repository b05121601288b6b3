from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Optional

from argon2 import PasswordHasher
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .container import Services, build_services, get_services
from .errors import ApiError, ErrorCode, InvalidInput
from .logging_setup import configure_logging
from .middleware import RequestLoggingMiddleware
from .repositories import TaskRepository, UserRepository
from .routers import auth as auth_router
from .routers import tasks as tasks_router
from .schemas import HealthOut
from .sessions import SessionIssuer
from .settings import Settings, get_settings
from .utils import utcnow

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Registration, login and the authenticated user's profile."},
    {
        "name": "tasks",
        "description": "CRUD operations for the caller's tasks with status filtering, sorting and statistics.",
    },
]

health_router = APIRouter(prefix="/api", tags=["health"])


# PUBLIC_INTERFACE
@health_router.get("/health", response_model=HealthOut, summary="Health Check")
def health_check(services: Services = Depends(get_services)) -> HealthOut:
    """
    Health check endpoint.

    Returns:
        Service status, uptime, record counts and whether the insecure default
        signing secret is in use.
    """
    return HealthOut(
        status="OK",
        message="Backend server is running",
        timestamp=utcnow(),
        uptime=services.uptime(),
        users_count=services.credentials.count(),
        tasks_count=services.tasks.count(),
        backend=services.settings.persistence_backend,
        using_default_secret=services.settings.using_default_secret,
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Request shape errors are reported as 400 InvalidInput.

        Response format:
            {
                "error": "InvalidInput",
                "message": "Request validation failed",
                "detail": [... pydantic/fastapi error details ...]
            }
        """
        error = InvalidInput(detail=jsonable_encoder(exc.errors()))
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        is_api = request.url.path.startswith("/api")
        if exc.status_code == 404 or (exc.status_code == 405 and is_api):
            # a wrong method on a known /api path is just another unknown endpoint
            message = "API endpoint not found" if is_api else "Not found"
            return JSONResponse(status_code=404, content={"error": ErrorCode.NOT_FOUND.value, "message": message})
        content = {"error": HTTPStatus(exc.status_code).phrase.replace(" ", ""), "message": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=ApiError().to_body())


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    users: Optional[UserRepository] = None,
    tasks: Optional[TaskRepository] = None,
    issuer: Optional[SessionIssuer] = None,
    hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Defaults to get_settings() (environment variables).
        users / tasks: Repositories to use instead of the configured backend.
        issuer: Session issuer to use instead of one built from settings.
        hasher: Argon2 hasher for the credential store (tests pass a cheap one).
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Task Tracker Backend",
        description="Task tracking API with bearer-token authentication and per-user tasks.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.services = build_services(settings, users=users, tasks=tasks, issuer=issuer, hasher=hasher)

    # Configure CORS based on settings (CORS_ALLOW_ORIGINS)
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    _register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router.router)
    app.include_router(tasks_router.router)

    if settings.using_default_secret:
        logger.warning("JWT_SECRET is not set; signing tokens with the insecure default secret")
    logger.info("Task tracker API ready (storage backend: %s)", settings.persistence_backend)
    return app


app = create_app()
