"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL.  API and storage tests are parametrised over both
backends, ``memory`` and ``sql``, so each behaviour is checked twice.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from campuspool.api.app import create_app
from campuspool.api.middleware import limiter
from campuspool.config import settings
from campuspool.infrastructure import models  # noqa: F401  (registers tables)
from campuspool.infrastructure.database import Base
from campuspool.infrastructure.repositories import SqlStorage
from campuspool.infrastructure.storage import MemoryStorage

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# Fast hashes and no throttling under test
settings.bcrypt_rounds = 4
limiter.enabled = False

BACKENDS = ["memory", "sql"]


def future(hours: int = 24) -> str:
    """ISO timestamp *hours* from now, as a client would send it."""
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh SQLite schema per test; StaticPool keeps the single connection."""
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture(params=BACKENDS)
async def storage(request, session_factory):
    if request.param == "memory":
        yield MemoryStorage()
        return
    async with session_factory() as session:
        yield SqlStorage(session)


@pytest.fixture(params=BACKENDS)
def app(request, session_factory):
    return create_app(storage_backend=request.param, session_factory=session_factory)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register(client):
    """Register a user; returns ``(user_json, auth_headers)``."""

    async def _register(username: str, *, is_driver: bool = False, **extra):
        payload = {
            "username": username,
            "password": "secret123",
            "fullName": username.title(),
            "email": f"{username}@example.com",
            "university": "DLSU",
            "isDriver": is_driver,
            **extra,
        }
        resp = await client.post("/api/register", json=payload)
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _register


@pytest.fixture
def offer_ride(client):
    """Create a ride as the given driver; returns the ride JSON."""

    async def _offer_ride(headers: dict, *, seats: int = 3, **extra):
        payload = {
            "origin": "Taft Avenue",
            "destination": "DLSU Laguna",
            "departureTime": future(),
            "price": 120,
            "availableSeats": seats,
            **extra,
        }
        resp = await client.post("/api/rides", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _offer_ride
