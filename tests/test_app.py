"""Tests for app assembly: root route, error shape, startup behaviour."""

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import BACKEND_URLS, make_settings
from issuedesk.core.config import Settings
from issuedesk.main import create_app, lifespan, seed_admin
from issuedesk.stores.memory import MemoryBackend


@pytest.mark.asyncio
async def test_root_banner(async_client: AsyncClient):
    resp = await async_client.get("/")
    assert resp.status_code == 200
    assert resp.text == "Server is live!"


@pytest.mark.asyncio
async def test_unknown_route_is_404_with_message(async_client: AsyncClient):
    resp = await async_client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Not Found"}


@pytest.mark.asyncio
async def test_malformed_json_is_400(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/auth/login",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert "message" in resp.json()


def test_settings_parse_comma_separated_origins():
    settings = Settings(_env_file=None, CORS_ORIGINS="http://a.test, http://b.test")
    assert settings.CORS_ORIGINS == ["http://a.test", "http://b.test"]


@pytest.mark.asyncio
async def test_seed_admin_creates_account_once():
    backend = MemoryBackend()
    settings = make_settings(
        DATABASE_URL=BACKEND_URLS["memory"],
        FIRST_ADMIN_EMAIL="Admin@Desk.local",
        FIRST_ADMIN_PASSWORD="changeme123",
    )
    await seed_admin(backend, settings)
    await seed_admin(backend, settings)

    assert len(backend.data.users) == 1
    async with backend.user_store() as users:
        admin = await users.find_by_email("admin@desk.local")
    assert admin.role == "admin"
    assert users.verify_password("changeme123", admin.hashed_password)


@pytest.mark.asyncio
async def test_seeded_admin_can_log_in():
    app = create_app(
        make_settings(
            DATABASE_URL=BACKEND_URLS["memory"],
            FIRST_ADMIN_EMAIL="admin@desk.local",
            FIRST_ADMIN_PASSWORD="changeme123",
        )
    )
    async with lifespan(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.post(
                "/api/auth/login", json={"email": "admin@desk.local", "password": "changeme123"}
            )
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "admin"


class _UnreachableBackend(MemoryBackend):
    async def connect(self) -> None:
        raise ConnectionError("database is down")


@pytest.mark.asyncio
async def test_startup_fails_fast_when_store_is_unreachable():
    app = create_app(make_settings(DATABASE_URL=BACKEND_URLS["memory"]), backend=_UnreachableBackend())
    with pytest.raises(ConnectionError):
        async with lifespan(app):
            pass
