"""
api/main.py -- FastAPI application entry point for videohub.

Exposes account registration, login, token refresh, and logout over HTTP.

Install deps:  pip install -e .
Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for allowed browser origins. Credentials
                       are allowed because the session travels in cookies.
  2. log_requests   -- one log line per request with status and latency.

Lifespan builds every long-lived object once (settings, store, token codec,
uploader, services) and hangs it on app.state. Route handlers only ever read
from app.state, so tests swap the whole graph by patching the lifespan.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.users import router as users_router
from auth.dependencies import AccessTokenGuard
from auth.login import AuthenticationService
from auth.registration import RegistrationService
from auth.session import LogoutService, SessionIssuer, TokenRefresher
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import Settings, StorageConfig, get_settings
from core.errors import ApiError, ErrorKind
from media.uploader import AssetUploader, CloudinaryUploader

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("videohub.api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def build_state(app: FastAPI, settings: Settings, store: UserStore, uploader: AssetUploader) -> None:
    """Attach the store, codec, uploader and every service to app.state.

    Shared by the real lifespan and the test lifespan so both wire the
    service graph identically; only the store and uploader differ.
    """
    codec = TokenCodec(
        access_secret=settings.access_token_secret,
        access_expires=timedelta(minutes=settings.access_token_expire_minutes),
        refresh_secret=settings.refresh_token_secret,
        refresh_expires=timedelta(days=settings.refresh_token_expire_days),
    )
    issuer = SessionIssuer(store, codec)

    app.state.settings = settings
    app.state.user_store = store
    app.state.codec = codec
    app.state.uploader = uploader
    app.state.registration = RegistrationService(store, uploader)
    app.state.authentication = AuthenticationService(store, issuer)
    app.state.refresher = TokenRefresher(store, codec, issuer)
    app.state.logout = LogoutService(store)
    app.state.access_guard = AccessTokenGuard(store, codec)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. get_settings() is cached, so this is the same Settings object
    the CORS middleware was configured from at import.
    """
    # Startup
    logger.info("videohub API starting up")
    settings = get_settings()
    settings.upload_temp_dir.mkdir(parents=True, exist_ok=True)

    storage = StorageConfig.from_settings(settings)
    if not storage.configured:
        logger.warning("Cloudinary credentials not set -- registration will fail at avatar upload")

    build_state(app, settings, UserStore(db_url=settings.database_url), CloudinaryUploader(storage))
    logger.info("Auth initialized (temp dir %s)", settings.upload_temp_dir)

    yield

    # Shutdown
    app.state.user_store.close()
    logger.info("videohub API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="videohub API",
    description="User accounts and session tokens for the videohub backend.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(
    status_code: int, code: str, message: str, errors: list[ErrorDetail] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            status_code=status_code,
            message=message,
            error=code,
            errors=errors or [],
        ).model_dump(by_alias=True),
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render a domain failure. The status code comes from the error kind."""
    if exc.kind is ErrorKind.INTERNAL:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
    errors = [ErrorDetail(field=exc.field, message=exc.message)] if exc.field else []
    return _error_response(exc.status_code, exc.kind.value, exc.message, errors)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one ErrorDetail per failing field when the request body fails validation."""
    errors = [
        ErrorDetail(
            field=".".join(str(part) for part in err.get("loc", ())[1:]) or None,
            message=err.get("msg", "Invalid value"),
        )
        for err in exc.errors()
    ]
    return _error_response(400, ErrorKind.VALIDATION.value, "Request validation failed", errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return the envelope for framework-raised HTTP errors (404 route, 405 method)."""
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the raw exception is written to the log only, never to the
    response body. The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorKind.INTERNAL.value, "Something went wrong")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and whether the user store answers."""
    store = getattr(request.app.state, "user_store", None)
    try:
        database = "ok" if store is not None and store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the user store")
        database = "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=API_VERSION,
        components={"app": "ok", "database": database},
    )
