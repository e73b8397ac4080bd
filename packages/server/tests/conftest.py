"""
Shared test fixtures: in-memory SQLite database, test settings, issuer and client.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

# Import all models so metadata is populated
import taskline.models  # noqa: F401
from taskline.core.auth import IdentityIssuer, get_identity_issuer
from taskline.core.config import Settings, get_settings
from taskline.core.database import get_session
from taskline.main import create_app

from factories import SUPER_ADMIN_EMAIL, TEST_SECRET


def _not_found_lookup(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404, json={"detail": "not found"})


class LookupStub:
    """Stands in for the issuer's lookup-by-subject endpoint. Swap `.handler` per test."""

    def __init__(self):
        self.handler = _not_found_lookup
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


# ---------------------------------------------------------------------------
# Settings and issuer
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="development",
        database_url="sqlite+aiosqlite://",
        issuer_secret=TEST_SECRET,
        issuer_algorithms=["HS256"],
        issuer_user_lookup_url="https://issuer.test/users",
        issuer_api_key="issuer-key",
        super_admin_emails=[SUPER_ADMIN_EMAIL],
        dev_auth_bypass=False,
    )


@pytest.fixture
def lookup_stub() -> LookupStub:
    return LookupStub()


@pytest.fixture
def issuer(settings, lookup_stub) -> IdentityIssuer:
    return IdentityIssuer(settings, transport=httpx.MockTransport(lookup_stub))


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as sess:
        yield sess
        await sess.rollback()


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@pytest.fixture
def app(session, settings, issuer):
    application = create_app()

    async def _override_session():
        yield session

    application.dependency_overrides[get_session] = _override_session
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_identity_issuer] = lambda: issuer
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client sharing the test session."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def committing_client(engine, settings, issuer, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """Client whose requests go through the real per-request session (commit or roll back)."""
    monkeypatch.setattr(
        "taskline.core.database.async_session_factory",
        sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
    )
    application = create_app()
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_identity_issuer] = lambda: issuer
    transport = ASGITransport(app=application, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
