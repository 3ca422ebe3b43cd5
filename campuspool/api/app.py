"""
FastAPI application factory.

* Registers routes for auth, users, rides, bookings, messages, reviews,
  emergency contacts / alerts and the health check under ``/api``.
* Picks the storage backend (PostgreSQL via SQLAlchemy, or in-memory)
  once at startup.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import async_sessionmaker

from campuspool.api.middleware import limiter
from campuspool.api.routes import (
    admin,
    auth,
    bookings,
    emergency,
    messages,
    reviews,
    rides,
    users,
)
from campuspool.api.schemas import ErrorResponse
from campuspool.config import settings
from campuspool.domain.entities import InvalidStateTransition
from campuspool.infrastructure.database import async_session_factory, engine
from campuspool.infrastructure.storage import MemoryStorage

logging.basicConfig(level=settings.log_level)

# Error bodies documented on every route; all carry a single "detail"
ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 403, 404, 409, 429)
}

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the chosen backend on startup; release the pool on shutdown."""
    logger.info("CampusPool starting with %s storage", app.state.storage_backend)
    yield
    if app.state.storage_backend == "sql":
        await engine.dispose()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


async def invalid_transition_handler(request: Request, exc: InvalidStateTransition):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(
    storage_backend: Optional[str] = None,
    session_factory: Optional[async_sessionmaker] = None,
) -> FastAPI:
    """
    Build the application.

    ``storage_backend`` overrides ``settings.storage_backend``;
    ``session_factory`` overrides the module-level factory for the SQL
    backend (tests point it at SQLite).
    """
    backend = storage_backend or settings.storage_backend
    if backend not in ("sql", "memory"):
        raise ValueError(f"Unknown storage backend: {backend!r}")

    app = FastAPI(
        title="CampusPool API",
        description=(
            "Ride sharing for university students: drivers offer seats, "
            "passengers book them, and both sides message, review each "
            "other and raise emergency alerts."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.storage_backend = backend
    if backend == "memory":
        app.state.memory_storage = MemoryStorage()
    else:
        app.state.session_factory = session_factory or async_session_factory

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Error mapping
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(InvalidStateTransition, invalid_transition_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Routers
    for module in (auth, users, rides, bookings, messages, reviews, emergency, admin):
        app.include_router(module.router, prefix="/api", responses=ERROR_RESPONSES)

    return app
