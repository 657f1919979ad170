"""Integration tests for application-level endpoints and middleware."""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from ngoconnect.core import database
from ngoconnect.core.database import get_db
from ngoconnect.main import app
from ngoconnect.models.enums import PrincipalRole
from tests.conftest import auth_headers


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/api/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.headers["X-Request-ID"]



@pytest.mark.asyncio
async def test_invalid_token_is_unauthorized(client: AsyncClient):
    response = await client.get(
        "/api/notifications",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_reports_token_identity(client: AsyncClient, admin_headers: dict):
    response = await client.get("/api/me", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"id": "admin-1", "role": "admin"}


class UnreachableSession:
    """Session whose every statement fails as if the database were down."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    async def commit(self):
        pass

    async def rollback(self):
        pass


@pytest.mark.asyncio
async def test_unreachable_database_is_storage_unavailable(client: AsyncClient, monkeypatch):
    app.dependency_overrides.pop(get_db, None)
    monkeypatch.setattr(database, "AsyncSessionLocal", UnreachableSession)

    response = await client.get(
        "/api/registrations/me",
        headers=auth_headers("org-down", PrincipalRole.NGO),
    )

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "5"
    assert response.json()["detail"]["error"] == "storage_unavailable"


@pytest.mark.asyncio
async def test_api_responses_are_not_cached(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.headers["Cache-Control"] == "no-store"
