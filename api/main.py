"""
api/main.py -- FastAPI application entry point for Craterra.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for allowed browser origins
  2. log_requests       -- one access-log line per request with latency

Every response, success or failure, uses the envelope from api/envelope.py.
Errors raised anywhere below the routes (ApiError subclasses) are turned into
that envelope by exactly one handler here; nothing else catches them.

Lifespan builds the stores and the asset host from Settings on startup and
closes the stores on shutdown.
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
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.envelope import fail, respond
from api.limiter import limiter
from api.models import HealthData
from api.routes.admin import router as admin_router
from api.routes.albums import router as albums_router
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from auth.store import UserStore
from catalog.store import AlbumStore
from core.config import get_settings
from core.errors import ApiError
from media.host import AssetHost

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("craterra.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the shared stores and asset host; close the stores on shutdown.

    Settings are read once here and passed into each constructor. Route
    handlers reach these objects through request.app.state.
    """
    settings = get_settings()
    logger.info("Craterra API starting up")
    app.state.user_store = UserStore(db_url=settings.database_url)
    app.state.album_store = AlbumStore(db_url=settings.database_url)
    app.state.asset_host = AssetHost(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        folder=settings.cloudinary_folder,
    )
    if not app.state.asset_host.configured:
        logger.warning("Cloudinary credentials not set -- image uploads will fail")
    logger.info("Stores initialized (%d users)", app.state.user_store.count_users())

    yield

    app.state.album_store.close()
    app.state.user_store.close()
    logger.info("Craterra API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Craterra API",
    description="Personal music album collection: users, albums, cover art and admin moderation.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# slowapi looks for the limiter on app.state by convention.
app.state.limiter = limiter


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

app.include_router(auth_router)
app.include_router(albums_router)
app.include_router(users_router)
app.include_router(admin_router)


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same envelope so clients can parse errors without
# inspecting status codes first.
# ---------------------------------------------------------------------------


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return fail(exc.status_code, exc.message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 in the envelope; Retry-After tells clients how long to wait."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = fail(429, "Too many requests")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Path/query validation failures are client errors: 400, not FastAPI's 422."""
    parts = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return fail(400, "Invalid request: " + "; ".join(parts))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Router-level errors (unknown path, wrong method) in the envelope."""
    if exc.status_code == 404:
        return fail(404, "Route not found")
    return fail(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The traceback goes to the log only; the client gets a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return fail(500, "Unexpected error")


# ---------------------------------------------------------------------------
# Root and health
#
# Defined directly on the app, not in a router. No rate limit -- health
# checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/", tags=["Health"])
async def root() -> JSONResponse:
    return respond(200, "API is running")


@app.get("/health", tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Liveness plus a trivial database query and the image host status."""
    components = {
        "image_host": "configured" if request.app.state.asset_host.configured else "not_configured",
    }
    try:
        request.app.state.user_store.ping()
        components["database"] = "ok"
    except SQLAlchemyError as exc:
        logger.error("Health check database query failed: %s", exc)
        components["database"] = "unavailable"
    healthy = components["database"] == "ok"
    return respond(
        200 if healthy else 503,
        "Service healthy" if healthy else "Service degraded",
        HealthData(status="ok" if healthy else "degraded", version=__version__, components=components),
        success=healthy,
    )
