"""Integration tests for the need-request ledger."""

from datetime import UTC, datetime

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.core.config import get_settings
from ngoconnect.core.exceptions import PermissionDenied, ValidationError
from ngoconnect.models.enums import PrincipalRole, RegistrationStatus, RequestStatus, RequestWindow
from ngoconnect.models.organization_registration import OrganizationRegistration
from ngoconnect.services.need_request_service import NeedRequestService
from tests.conftest import auth_headers, create_need_request, create_registration

DESCRIPTION = "Rice and lentils for the community kitchen"


@pytest.fixture
def org_a_headers() -> dict[str, str]:
    return auth_headers("org-a", PrincipalRole.NGO)


@pytest.fixture
def org_b_headers() -> dict[str, str]:
    return auth_headers("org-b", PrincipalRole.NGO)


@pytest.mark.asyncio
async def test_approved_organization_creates_request(
    client: AsyncClient,
    approved_org: OrganizationRegistration,
    org_a_headers: dict,
):
    """A food request for 50 units with no details starts pending with nothing received."""
    response = await client.post(
        "/api/requests",
        json={"category": "food", "required_quantity": 50, "description": DESCRIPTION},
        headers=org_a_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["organization_id"] == "org-a"
    assert data["title"] == "Food request"
    assert data["details"] == {}

    report = await client.get("/api/organizations/org-a/fulfillment", headers=org_a_headers)
    assert report.status_code == 200
    item = report.json()["requests"][0]
    assert item["received_quantity"] == 0
    assert item["fulfilled_percent"] == 0


@pytest.mark.asyncio
async def test_request_with_category_details(
    client: AsyncClient,
    approved_org: OrganizationRegistration,
    org_a_headers: dict,
):
    response = await client.post(
        "/api/requests",
        json={
            "title": "Winter jackets",
            "category": "clothing",
            "required_quantity": 40,
            "urgency_level": "high",
            "description": "Jackets for children at the night shelter",
            "details": {"clothing_type": "Jackets", "condition": "New", "season": "Winter"},
        },
        headers=org_a_headers,
    )
    assert response.status_code == 201
    assert response.json()["details"]["category"] == "clothing"
    assert response.json()["urgency_level"] == "high"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "registered"),
    [(RegistrationStatus.PENDING, True), (RegistrationStatus.REJECTED, True), (None, False)],
)
async def test_unverified_organization_cannot_create(
    client: AsyncClient,
    db: AsyncSession,
    org_a_headers: dict,
    status,
    registered,
):
    if registered:
        await create_registration(db, "org-a", status=status)

    response = await client.post(
        "/api/requests",
        json={"category": "food", "required_quantity": 50, "description": DESCRIPTION},
        headers=org_a_headers,
    )
    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "permission_denied"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"required_quantity": 0}, "required_quantity"),
        ({"required_quantity": -3}, "required_quantity"),
        ({"required_quantity": "nan"}, "required_quantity"),
        ({"required_quantity": "inf"}, "required_quantity"),
        ({"category": "furniture"}, "category"),
        ({"description": "too short"}, "description"),
        ({"title": "Hi"}, "title"),
        ({"needed_by": "2020-01-01"}, "needed_by"),
        ({"details": {"food_category": "Grains"}}, "details.food_type"),
    ],
)
async def test_invalid_request_input(
    client: AsyncClient,
    approved_org: OrganizationRegistration,
    org_a_headers: dict,
    overrides: dict,
    field: str,
):
    payload = {"category": "food", "required_quantity": 50, "description": DESCRIPTION}
    payload.update(overrides)

    response = await client.post("/api/requests", json=payload, headers=org_a_headers)
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == field


@pytest.mark.asyncio
async def test_foreign_request_looks_like_missing_request(
    client: AsyncClient,
    db: AsyncSession,
    approved_org: OrganizationRegistration,
    other_approved_org: OrganizationRegistration,
    org_b_headers: dict,
):
    own_by_a = await create_need_request(db, "org-a")

    foreign = await client.get(f"/api/requests/{own_by_a.id}", headers=org_b_headers)
    missing = await client.get(
        "/api/requests/00000000-0000-0000-0000-000000000000",
        headers=org_b_headers,
    )
    assert foreign.status_code == 403
    assert missing.status_code == 403
    assert foreign.json() == missing.json()


@pytest.mark.asyncio
async def test_owner_and_admin_can_read_request(
    client: AsyncClient,
    db: AsyncSession,
    approved_org: OrganizationRegistration,
    org_a_headers: dict,
    admin_headers: dict,
):
    need_request = await create_need_request(db, "org-a")

    own = await client.get(f"/api/requests/{need_request.id}", headers=org_a_headers)
    admin = await client.get(f"/api/requests/{need_request.id}", headers=admin_headers)
    assert own.status_code == 200
    assert admin.status_code == 200


@pytest.mark.asyncio
async def test_listing_is_scoped_to_organization(
    client: AsyncClient,
    db: AsyncSession,
    approved_org: OrganizationRegistration,
    other_approved_org: OrganizationRegistration,
    org_a_headers: dict,
    admin_headers: dict,
    donor_headers: dict,
):
    await create_need_request(db, "org-a")
    await create_need_request(db, "org-b")

    own = await client.get("/api/requests", headers=org_a_headers)
    assert own.json()["total"] == 1
    assert own.json()["items"][0]["organization_id"] == "org-a"

    everything = await client.get("/api/requests", headers=admin_headers)
    assert everything.json()["total"] == 2

    donor = await client.get("/api/requests", headers=donor_headers)
    assert donor.status_code == 403


@pytest.mark.asyncio
async def test_listing_windows(db: AsyncSession, approved_org: OrganizationRegistration):
    """Windows are computed in Asia/Kolkata: the week began 2026-10-18 18:30 UTC."""
    now = datetime(2026, 10, 21, 3, 0, tzinfo=UTC)
    this_week = await create_need_request(db, "org-a")
    this_week.created_at = datetime(2026, 10, 18, 19, 0, tzinfo=UTC)
    last_week = await create_need_request(db, "org-a")
    last_week.created_at = datetime(2026, 10, 18, 18, 0, tzinfo=UTC)
    last_month = await create_need_request(db, "org-a")
    last_month.created_at = datetime(2026, 9, 20, 12, 0, tzinfo=UTC)
    await db.flush()

    service = NeedRequestService(db)

    week = await service.list_requests("org-a", window=RequestWindow.THIS_WEEK, now=now)
    assert [r.id for r in week] == [this_week.id]

    seven_days = await service.list_requests("org-a", window=RequestWindow.LAST_7_DAYS, now=now)
    assert {r.id for r in seven_days} == {this_week.id, last_week.id}

    month = await service.list_requests("org-a", window=RequestWindow.THIS_MONTH, now=now)
    assert {r.id for r in month} == {this_week.id, last_week.id}

    everything = await service.list_requests("org-a", now=now)
    assert len(everything) == 3


@pytest.mark.asyncio
async def test_admin_status_transitions_notify_owner(
    client: AsyncClient,
    db: AsyncSession,
    approved_org: OrganizationRegistration,
    admin_headers: dict,
    org_a_headers: dict,
):
    need_request = await create_need_request(db, "org-a", status=RequestStatus.PENDING)

    skip = await client.post(
        f"/api/requests/{need_request.id}/status",
        json={"status": "fulfilled"},
        headers=admin_headers,
    )
    assert skip.status_code == 409

    approve = await client.post(
        f"/api/requests/{need_request.id}/status",
        json={"status": "approved", "comment": "Looks good"},
        headers=admin_headers,
    )
    assert approve.status_code == 200
    assert approve.json()["status"] == "approved"

    inbox = await client.get("/api/notifications", headers=org_a_headers)
    item = inbox.json()["items"][0]
    assert item["category"] == "request_approved"
    assert "Looks good" in item["message"]


@pytest.mark.asyncio
async def test_get_request_service_denies_foreign_owner(
    db: AsyncSession,
    approved_org: OrganizationRegistration,
):
    need_request = await create_need_request(db, "org-a")
    service = NeedRequestService(db)

    with pytest.raises(PermissionDenied):
        await service.get_request("org-b", need_request.id)


@pytest.mark.asyncio
async def test_needed_by_today_is_accepted(db: AsyncSession, approved_org: OrganizationRegistration):
    service = NeedRequestService(db)
    today = datetime.now(get_settings().tzinfo).date()
    need_request = await service.create_request(
        organization_id="org-a",
        category="medical",
        required_quantity=5,
        urgency_level="low",
        description="First-aid kits for the mobile clinic",
        needed_by=today,
    )
    assert need_request.needed_by is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [float("nan"), float("inf")])
async def test_non_finite_required_quantity_is_rejected(
    db: AsyncSession,
    approved_org: OrganizationRegistration,
    quantity: float,
):
    service = NeedRequestService(db)
    with pytest.raises(ValidationError) as exc_info:
        await service.create_request(
            organization_id="org-a",
            category="food",
            required_quantity=quantity,
            urgency_level="low",
            description=DESCRIPTION,
        )
    assert exc_info.value.field == "required_quantity"
