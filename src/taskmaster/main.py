from __future__ import annotations

import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import StartupError, TaskmasterError
from .logging_config import setup_logging
from .middleware import OriginAllowListMiddleware, RequestLoggingMiddleware
from .origins import normalize_origin
from .repositories import Repository, get_repository
from .routers import tasks as tasks_router
from .settings import Settings, get_settings

log = structlog.get_logger(__name__)

openapi_tags = [
    {"name": "health", "description": "Liveness endpoint used by the client's connectivity probe."},
    {"name": "tasks", "description": "List, create and delete tasks."},
]


def _open_repository(settings: Settings) -> Repository:
    """Create the configured store and verify it answers. Any failure is fatal."""
    try:
        repo = get_repository(settings)
    except StartupError:
        raise
    except Exception as e:
        raise StartupError("Failed to open task store") from e
    try:
        repo.ping()
    except Exception as e:
        repo.close()
        raise StartupError("Task store is unreachable") from e
    return repo


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the task store once at startup and close it on shutdown."""
    owns_repository = app.state.repository is None
    if owns_repository:
        try:
            app.state.repository = _open_repository(app.state.settings)
        except StartupError as e:
            log.error("startup_failed", reason=e.message, cause=repr(e.__cause__))
            raise
    log.info("storage_ready", backend=type(app.state.repository).__name__)

    yield

    if owns_repository and app.state.repository is not None:
        app.state.repository.close()
        app.state.repository = None


async def taskmaster_error_handler(request: Request, exc: TaskmasterError) -> JSONResponse:
    """Render domain errors as {"error": ..., "message": ...}."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": [... pydantic/fastapi error details ...]
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


_HTTP_ERROR_KINDS = {404: "NotFound", 405: "MethodNotAllowed"}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (unknown path, wrong method) in the same error/message shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": _HTTP_ERROR_KINDS.get(exc.status_code, "HTTPError"), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log everything server-side, reveal nothing to the client."""
    log.exception("unhandled_exception", error_type=type(exc).__name__, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "InternalError", "message": "Internal server error"},
    )


# PUBLIC_INTERFACE
def health_check() -> PlainTextResponse:
    """
    Liveness endpoint.

    Returns:
        Plain text confirming the process is serving requests.
    """
    return PlainTextResponse("Backend is working!")


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, repository: Optional[Repository] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Service settings; loaded from the environment when omitted,
            which raises StartupError if no storage URL is configured.
        repository: A ready-made store. When omitted the store is opened from
            settings.storage_url during startup.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Task Master Backend",
        description="Backend API service for a shared task list.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.repository = repository

    allowed_origins = [normalize_origin(o) for o in settings.cors_allow_origins if o.strip()]

    # Last added runs first: logging, then the origin check, then CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.add_middleware(OriginAllowListMiddleware, allowed_origins=allowed_origins)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(TaskmasterError, taskmaster_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_api_route("/", health_check, methods=["GET"], summary="Health Check", tags=["health"])
    app.include_router(tasks_router.router)
    return app


# PUBLIC_INTERFACE
def run() -> None:
    """Console entry point: load settings, then serve with uvicorn. Exits 1 on bad configuration."""
    try:
        settings = get_settings()
    except StartupError as e:
        setup_logging()
        log.error("startup_failed", reason=e.message)
        sys.exit(1)

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
