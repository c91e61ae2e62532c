"""
Shared test fixtures for the Issue Desk test suite.

Every test gets a fresh app built from explicit ``Settings``; the app
fixture runs once per store backend (SQLite in-memory via aiosqlite, and
the in-process memory backend).
"""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from issuedesk.core.config import Settings
from issuedesk.core.security import pwd_context
from issuedesk.db.session import create_backend
from issuedesk.main import create_app

# Keep bcrypt cheap in tests
pwd_context.update(bcrypt__rounds=4)

TEST_SECRET = "test-secret-key-not-for-production"

BACKEND_URLS = {
    "sqlite": "sqlite+aiosqlite:///:memory:",
    "memory": "memory://",
}


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": BACKEND_URLS["sqlite"],
        "SECRET_KEY": TEST_SECRET,
        "RATE_LIMIT_ENABLED": False,
        "LOG_LEVEL": "WARNING",
        "CORS_ORIGINS": ["*"],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(params=sorted(BACKEND_URLS))
def settings(request) -> Settings:
    return make_settings(DATABASE_URL=BACKEND_URLS[request.param])


@pytest.fixture
async def app(settings: Settings):
    application = create_app(settings)
    # ASGITransport does not run the lifespan, so connect by hand
    await application.state.backend.connect()
    yield application
    await application.state.backend.dispose()


@pytest.fixture
async def backend(settings: Settings):
    store_backend = create_backend(settings.DATABASE_URL)
    await store_backend.connect()
    yield store_backend
    await store_backend.dispose()


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ── Auth helpers ────────────────────────────────────────────────────
async def register(
    client: AsyncClient,
    username: str,
    email: str,
    password: str = "pw1",
    role: str | None = "customer",
    phone_number: str | None = None,
):
    body = {"username": username, "email": email, "password": password}
    if role is not None:
        body["role"] = role
    if phone_number is not None:
        body["phone_number"] = phone_number
    return await client.post("/api/auth/register", json=body)


async def login_headers(
    client: AsyncClient,
    username: str,
    email: str,
    role: str = "customer",
    phone_number: str | None = None,
) -> dict[str, str]:
    """Register a user, log in and return the bearer header."""
    resp = await register(client, username, email, role=role, phone_number=phone_number)
    assert resp.status_code == 201, resp.text
    resp = await client.post("/api/auth/login", json={"email": email, "password": "pw1"})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
async def customer_headers(async_client: AsyncClient) -> dict[str, str]:
    return await login_headers(async_client, "alice", "alice@example.com", phone_number="555-0100")


@pytest.fixture
async def other_customer_headers(async_client: AsyncClient) -> dict[str, str]:
    return await login_headers(async_client, "bob", "bob@example.com")


@pytest.fixture
async def technician_headers(async_client: AsyncClient) -> dict[str, str]:
    return await login_headers(async_client, "tina", "tina@example.com", role="technician")


@pytest.fixture
async def admin_headers(async_client: AsyncClient) -> dict[str, str]:
    return await login_headers(async_client, "root", "root@example.com", role="admin")


ISSUE = {
    "title": "Leak",
    "description": "Water under the sink",
    "location": "B1",
    "department": "Plumbing",
}


async def create_issue(client: AsyncClient, headers: dict[str, str], **overrides) -> dict:
    resp = await client.post("/api/issues", json={**ISSUE, **overrides}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
