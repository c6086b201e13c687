"""Pytest configuration and fixtures for backend tests.

Each test gets a fresh application, so session registry and login throttle
state never leak between tests. Time-dependent behaviour is driven by a
FakeClock injected into the token service and registry.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_SESSION_SECRET"] = "test-session-secret-" + "0" * 44

TEST_SESSION_SECRET = os.environ["ADMIN_SESSION_SECRET"]
TEST_ADMIN_USERNAME = "marketadmin"
TEST_ADMIN_PASSWORD = "testpassword123"
COOKIE_NAME = "admin_session"

from app.core.config import Settings  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.auth import IssuedSession, SessionTokenService, hash_password  # noqa: E402
from app.services.session_registry import SessionRegistry  # noqa: E402


class FakeClock:
    """Callable clock returning a controllable Unix timestamp."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def cookie_header(token: str) -> dict[str, str]:
    """Request headers carrying the admin session cookie."""
    return {"Cookie": f"{COOKIE_NAME}={token}"}


def start_session(app: FastAPI, subject: str = TEST_ADMIN_USERNAME) -> IssuedSession:
    """Issue a token and register it, as a successful login would."""
    issued = app.state.token_service.issue(subject)
    app.state.session_registry.activate(
        issued.claims.jti, subject=subject, expires_at=issued.claims.exp
    )
    return issued


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def admin_password_hash() -> str:
    """Argon2 hash of the test password (hashed once, it is slow by design)."""
    return hash_password(TEST_ADMIN_PASSWORD)


@pytest.fixture
def test_settings(admin_password_hash) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        admin_username=TEST_ADMIN_USERNAME,
        admin_password_hash=admin_password_hash,
        admin_session_secret=TEST_SESSION_SECRET,
        admin_session_ttl_seconds=3600,
        cors_origins="http://localhost:3000",
    )


@pytest.fixture
def app(test_settings, clock) -> FastAPI:
    return create_app(test_settings, clock=clock)


@pytest.fixture
def client(app) -> TestClient:
    """Sync test client; lifespan is not started so no background tasks run."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def token_service(clock) -> SessionTokenService:
    return SessionTokenService(TEST_SESSION_SECRET, ttl_seconds=3600, clock=clock)


@pytest.fixture
def registry(clock) -> SessionRegistry:
    return SessionRegistry(clock=clock)
