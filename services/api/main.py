"""
Tripboard FastAPI service: trip membership, invites, and access checks.

Entrypoint: uvicorn services.api.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from services.api.config import settings
from services.api.db.engine import create_engine, create_session_factory, create_tables
from services.api.membership.errors import MembershipError
from services.api.membership.store import SQLMembershipStore
from services.api.middleware.cors import setup_cors
from services.api.middleware.rate_limit import build_rate_limiter
from services.api.middleware.sentry import setup_sentry
from services.api.routers import access, health, invites, trips

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_sentry()

    # Redis only backs the shared rate limiter
    redis_client = None
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await redis_client.ping()
        except Exception as e:
            # Rate limiting degrades to in-process counters
            logger.warning("Redis unavailable, using in-process rate limiter: %s", e)
            redis_client = None

    app.state.redis = redis_client
    app.state.rate_limiter = build_rate_limiter(redis_client)
    app.state.settings = settings

    sa_engine = None
    app.state.store = None
    if settings.database_url:
        try:
            sa_engine = create_engine()
            if settings.environment == "development":
                await create_tables(sa_engine)
            app.state.store = SQLMembershipStore(create_session_factory(sa_engine))
        except Exception as e:
            logger.warning("SA engine failed to init: %s", e)

    yield

    if sa_engine:
        await sa_engine.dispose()
    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="Tripboard API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Routers --

app.include_router(health.router)
app.include_router(invites.router)
app.include_router(access.router)
app.include_router(trips.router)


# -- Middleware (last added = outermost in Starlette) --


@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# CORS last so it is outermost and answers preflight
setup_cors(app)


# -- Exception Handlers --


def _error(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(MembershipError)
async def membership_error_handler(request: Request, exc: MembershipError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed path=%s code=%s", request.url.path, exc.code)
    return _error(request, exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(request, 400, "INVALID_INPUT", "Invalid request body.")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return _error(request, 404, "NOT_FOUND", "Route not found.")
    if exc.status_code == 405:
        return _error(request, 405, "METHOD_NOT_ALLOWED", "Method not allowed.")
    if exc.status_code == 503:
        return _error(request, 503, "SERVICE_UNAVAILABLE", str(exc.detail))
    return _error(request, exc.status_code, "HTTP_ERROR", str(exc.detail))


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error path=%s", request.url.path)
    return _error(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")
