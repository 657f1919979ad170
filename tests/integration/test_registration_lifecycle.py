"""Integration tests for the organization verification lifecycle."""

import json

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.models.audit_event import AuditEvent
from ngoconnect.models.enums import AuditAction, PrincipalRole, RegistrationStatus
from ngoconnect.models.notification import Notification
from ngoconnect.services.notification_service import NotificationService, WebhookChannel
from ngoconnect.services.registration_service import RegistrationService
from tests.conftest import auth_headers, create_registration

ORG_ID = "org-new"


@pytest.fixture
def ngo_headers() -> dict[str, str]:
    return auth_headers(ORG_ID, PrincipalRole.NGO)


@pytest.mark.asyncio
async def test_unregistered_organization_reports_unregistered(
    client: AsyncClient,
    ngo_headers: dict,
):
    response = await client.get("/api/registrations/me", headers=ngo_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "unregistered"
    assert data["registration"] is None


@pytest.mark.asyncio
async def test_submit_then_approve(
    client: AsyncClient,
    db: AsyncSession,
    ngo_headers: dict,
    admin_headers: dict,
    registration_payload: dict,
):
    """unregistered -> pending -> approved, with a notification to the organization."""
    submit = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    assert submit.status_code == 201
    registration_id = submit.json()["id"]
    assert submit.json()["status"] == "pending"

    review = await client.post(
        f"/api/registrations/{registration_id}/review",
        json={"status": "approved"},
        headers=admin_headers,
    )
    assert review.status_code == 200
    assert review.json()["status"] == "approved"
    assert review.json()["reviewed_by"] == "admin-1"

    status_response = await client.get("/api/registrations/me", headers=ngo_headers)
    assert status_response.json()["status"] == "approved"

    inbox = await client.get("/api/notifications", headers=ngo_headers)
    assert inbox.json()["total"] == 1
    assert inbox.json()["items"][0]["category"] == "registration_approved"

    result = await db.execute(select(AuditEvent).where(AuditEvent.organization_id == ORG_ID))
    actions = {event.action for event in result.scalars().all()}
    assert actions == {AuditAction.REGISTRATION_SUBMIT, AuditAction.REGISTRATION_APPROVE}


@pytest.mark.asyncio
async def test_missing_document_is_rejected(
    client: AsyncClient,
    ngo_headers: dict,
    registration_payload: dict,
):
    registration_payload.pop("certificate_url")
    response = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error"] == "validation_error"
    assert detail["field"] == "certificate_url"


@pytest.mark.asyncio
async def test_declaration_must_be_accepted(
    client: AsyncClient,
    ngo_headers: dict,
    registration_payload: dict,
):
    registration_payload["declaration_accepted"] = False
    response = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "declaration_accepted"


@pytest.mark.asyncio
async def test_invalid_phone_is_rejected(
    client: AsyncClient,
    ngo_headers: dict,
    registration_payload: dict,
):
    registration_payload["phone"] = "12345"
    response = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "phone"


@pytest.mark.asyncio
async def test_second_submission_while_pending_conflicts(
    client: AsyncClient,
    ngo_headers: dict,
    registration_payload: dict,
):
    first = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    assert first.status_code == 201

    second = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    assert second.status_code == 409
    assert second.json()["detail"]["error"] == "conflict"


@pytest.mark.asyncio
async def test_resubmission_after_rejection(
    client: AsyncClient,
    ngo_headers: dict,
    admin_headers: dict,
    registration_payload: dict,
):
    """rejected -> pending creates a new record and keeps the old one."""
    first = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    first_id = first.json()["id"]

    reject = await client.post(
        f"/api/registrations/{first_id}/review",
        json={"status": "rejected", "rejection_reason": "Certificate is illegible"},
        headers=admin_headers,
    )
    assert reject.status_code == 200
    assert reject.json()["rejection_reason"] == "Certificate is illegible"

    inbox = await client.get("/api/notifications", headers=ngo_headers)
    message = inbox.json()["items"][0]["message"]
    assert "Certificate is illegible" in message

    again = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    assert again.status_code == 201
    assert again.json()["id"] != first_id
    assert again.json()["status"] == "pending"

    history = await client.get("/api/registrations/me/history", headers=ngo_headers)
    assert history.json()["total"] == 2
    statuses = sorted(item["status"] for item in history.json()["items"])
    assert statuses == ["pending", "rejected"]

    # The superseded record can no longer be reviewed
    stale = await client.post(
        f"/api/registrations/{first_id}/review",
        json={"status": "approved"},
        headers=admin_headers,
    )
    assert stale.status_code == 409


@pytest.mark.asyncio
async def test_approved_organization_cannot_resubmit(
    client: AsyncClient,
    db: AsyncSession,
    ngo_headers: dict,
    registration_payload: dict,
):
    await create_registration(db, ORG_ID, status=RegistrationStatus.APPROVED)

    response = await client.post("/api/registrations", json=registration_payload, headers=ngo_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_review_of_reviewed_registration_conflicts(
    client: AsyncClient,
    db: AsyncSession,
    admin_headers: dict,
):
    registration = await create_registration(db, ORG_ID, status=RegistrationStatus.APPROVED)

    response = await client.post(
        f"/api/registrations/{registration.id}/review",
        json={"status": "rejected"},
        headers=admin_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_only_admins_review(
    client: AsyncClient,
    db: AsyncSession,
    ngo_headers: dict,
):
    registration = await create_registration(db, ORG_ID, status=RegistrationStatus.PENDING)

    response = await client.post(
        f"/api/registrations/{registration.id}/review",
        json={"status": "approved"},
        headers=ngo_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_lists_pending_registrations(
    client: AsyncClient,
    db: AsyncSession,
    admin_headers: dict,
):
    await create_registration(db, "org-1", status=RegistrationStatus.PENDING)
    await create_registration(db, "org-2", status=RegistrationStatus.APPROVED)

    response = await client.get("/api/registrations?status=pending", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["organization_id"] == "org-1"


@pytest.mark.asyncio
async def test_failed_delivery_does_not_undo_review(db: AsyncSession):
    """A failing external channel is logged; the decision and inbox entry stand."""

    def failing_gateway(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    channel = WebhookChannel(
        "https://push.example/notify",
        transport=httpx.MockTransport(failing_gateway),
    )
    notifications = NotificationService(db, channel=channel)
    service = RegistrationService(db, notifications=notifications)
    registration = await create_registration(db, ORG_ID, status=RegistrationStatus.PENDING)

    reviewed = await service.approve(registration.id, reviewer_id="admin-1")
    await db.commit()

    assert await notifications.dispatch() == 0
    assert reviewed.status == RegistrationStatus.APPROVED
    result = await db.execute(select(Notification).where(Notification.recipient_id == ORG_ID))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_webhook_receives_notification_after_dispatch(db: AsyncSession):
    received: list[dict] = []

    def gateway(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(204)

    channel = WebhookChannel("https://push.example/notify", transport=httpx.MockTransport(gateway))
    notifications = NotificationService(db, channel=channel)
    service = RegistrationService(db, notifications=notifications)
    registration = await create_registration(db, ORG_ID, status=RegistrationStatus.PENDING)

    await service.reject(registration.id, reviewer_id="admin-1", reason="Expired certificate")
    assert received == []

    await db.commit()
    assert await notifications.dispatch() == 1

    assert len(received) == 1
    assert received[0]["recipient_id"] == ORG_ID
    assert received[0]["category"] == "registration_rejected"
    assert "Expired certificate" in received[0]["message"]

    assert await notifications.dispatch() == 0
    assert len(received) == 1


@pytest.mark.asyncio
async def test_rolled_back_review_sends_nothing(db: AsyncSession):
    received: list[httpx.Request] = []

    def gateway(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(204)

    channel = WebhookChannel("https://push.example/notify", transport=httpx.MockTransport(gateway))
    notifications = NotificationService(db, channel=channel)
    service = RegistrationService(db, notifications=notifications)
    registration = await create_registration(db, ORG_ID, status=RegistrationStatus.PENDING)
    await db.commit()

    await service.approve(registration.id, reviewer_id="admin-1")
    await db.rollback()

    assert received == []
    assert await service.get_status(ORG_ID) == RegistrationStatus.PENDING


@pytest.mark.asyncio
async def test_status_follows_review(db: AsyncSession):
    service = RegistrationService(db)
    assert await service.get_status(ORG_ID) == RegistrationStatus.UNREGISTERED

    registration = await create_registration(db, ORG_ID, status=RegistrationStatus.PENDING)
    assert await service.get_status(ORG_ID) == RegistrationStatus.PENDING

    await service.reject(registration.id, reviewer_id="admin-1", reason="Blurred scan")
    assert await service.get_status(ORG_ID) == RegistrationStatus.REJECTED
