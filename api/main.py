"""
api/main.py -- FastAPI application entry point for SessionAuth.

Run with:      uvicorn asgi:app --reload
               python main.py

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- browser origins from Settings.cors_origins, with
                       credentials allowed so the session cookies travel.
  2. log_requests   -- one INFO line per request with latency.

Lifespan builds the stores and the AuthService on startup and closes the
stores on shutdown. Tests swap the lifespan for one that wires in-memory
stores (see tests/conftest.py).

Every error leaves the API as {"message": ...}:
  AuthError               -> its own status (400 / 401 / 500)
  RequestValidationError  -> 400, naming the first failing field
  HTTPException           -> its status
  anything else           -> 500 "Server error", traceback logged only
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.models import HealthResponse, MessageResponse
from api.routes.v1.auth import router as auth_router
from auth.service import AuthService
from auth.store import UserStore
from cache.store import open_token_cache
from core.config import AuthConfig, get_settings
from core.errors import AuthError, StoreUnavailable

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("sessionauth.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the stores and the AuthService; close the stores on shutdown.

    The stores are attached to app.state as well as the service so the
    health endpoint can ping them directly.
    """
    logger.info("SessionAuth API starting up (environment=%s)", _settings.environment)
    config = AuthConfig.from_settings(_settings)
    app.state.user_store = UserStore(_settings.database_url)
    logger.info("User store initialized")
    app.state.token_cache = open_token_cache(_settings.token_cache_url, ttl=config.refresh_token_ttl)
    logger.info("Token cache initialized")
    app.state.auth_service = AuthService.from_config(config, app.state.user_store, app.state.token_cache)

    yield

    app.state.token_cache.close()
    app.state.user_store.close()
    logger.info("SessionAuth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SessionAuth API",
    description="Signup, login, logout and token refresh with JWT cookie sessions.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
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

app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=MessageResponse(message=message).model_dump())


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map the error taxonomy onto status codes. Store failures keep their cause in the log only."""
    if isinstance(exc, StoreUnavailable):
        logger.error(
            "Store unavailable on %s %s: %r",
            request.method,
            request.url.path,
            exc.__cause__,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 {message} naming the first field that failed validation."""
    errors = exc.errors()
    if not errors:
        return _message(400, "Invalid request")
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body" and not isinstance(part, int))
    detail = first.get("msg", "invalid value")
    return _message(400, f"{field}: {detail}" if field else detail)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _message(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _message(500, "Server error")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus a ping of each backing store."""
    components = {
        "app": "ok",
        "database": "ok" if request.app.state.user_store.ping() else "error",
        "token_cache": "ok" if request.app.state.token_cache.ping() else "error",
    }
    status = "healthy" if all(v == "ok" for v in components.values()) else "degraded"
    return HealthResponse(status=status, version=__version__, components=components)
