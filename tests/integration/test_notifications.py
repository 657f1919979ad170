"""Integration tests for the notification inbox."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.models.enums import NotificationCategory, PrincipalRole
from ngoconnect.services.notification_service import NotificationService
from tests.conftest import auth_headers


async def seed_inbox(db: AsyncSession, recipient_id: str, count: int) -> list:
    service = NotificationService(db)
    notifications = []
    for i in range(count):
        notifications.append(
            await service.emit(
                recipient_id=recipient_id,
                category=NotificationCategory.DONATION_ASSIGNED,
                title="New Donation Assigned",
                message=f"Donation {i} has been assigned to your organization.",
            )
        )
    return notifications


@pytest.mark.asyncio
async def test_list_and_mark_read(client: AsyncClient, db: AsyncSession):
    headers = auth_headers("org-a", PrincipalRole.NGO)
    notifications = await seed_inbox(db, "org-a", 3)

    inbox = await client.get("/api/notifications", headers=headers)
    assert inbox.status_code == 200
    assert inbox.json()["total"] == 3
    assert inbox.json()["unread"] == 3

    read = await client.post(f"/api/notifications/{notifications[0].id}/read", headers=headers)
    assert read.status_code == 200
    assert read.json()["is_read"] is True
    assert read.json()["read_at"] is not None

    unread_only = await client.get("/api/notifications?unread_only=true", headers=headers)
    assert unread_only.json()["total"] == 2
    assert unread_only.json()["unread"] == 2


@pytest.mark.asyncio
async def test_mark_all_read(client: AsyncClient, db: AsyncSession):
    headers = auth_headers("org-a", PrincipalRole.NGO)
    await seed_inbox(db, "org-a", 2)
    await seed_inbox(db, "org-b", 1)

    response = await client.post("/api/notifications/read-all", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"updated": 2}

    other = await client.get(
        "/api/notifications",
        headers=auth_headers("org-b", PrincipalRole.NGO),
    )
    assert other.json()["unread"] == 1


@pytest.mark.asyncio
async def test_cannot_read_someone_elses_notification(client: AsyncClient, db: AsyncSession):
    notifications = await seed_inbox(db, "org-a", 1)

    response = await client.post(
        f"/api/notifications/{notifications[0].id}/read",
        headers=auth_headers("org-b", PrincipalRole.NGO),
    )
    assert response.status_code == 404
