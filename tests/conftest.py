"""Pytest fixtures for testing."""

import os
from collections.abc import AsyncGenerator

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_TIMEZONE", "Asia/Kolkata")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ngoconnect.core.database import get_db
from ngoconnect.core.security import create_access_token
from ngoconnect.main import app
from ngoconnect.models.base import Base
from ngoconnect.models.donation import Donation
from ngoconnect.models.enums import (
    DonationStatus,
    DonationUnit,
    OrganizationType,
    PrincipalRole,
    RegistrationStatus,
    RequestCategory,
    RequestStatus,
    UrgencyLevel,
)
from ngoconnect.models.need_request import NeedRequest
from ngoconnect.models.organization_registration import OrganizationRegistration

# One shared in-memory database per test; StaticPool keeps the single connection alive
TEST_DATABASE_URL = "sqlite+aiosqlite://"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

ADMIN_ID = "admin-1"
DONOR_ID = "donor-1"


@pytest_asyncio.fixture(scope="function")
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Create test database session.

    Creates all tables before each test and drops them after.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database dependency override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(subject: str, role: PrincipalRole) -> dict[str, str]:
    """Bearer header for a principal as the identity provider would issue it."""
    token = create_access_token({"sub": subject, "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers(ADMIN_ID, PrincipalRole.ADMIN)


@pytest.fixture
def donor_headers() -> dict[str, str]:
    return auth_headers(DONOR_ID, PrincipalRole.DONOR)


@pytest.fixture
def registration_payload() -> dict:
    """A complete registration submission."""
    return {
        "organization_name": "Helping Hands Foundation",
        "organization_type": "NGO",
        "registration_number": "MH/2019/0042",
        "contact_person": "Asha Rao",
        "phone": "9876543210",
        "city": "Pune",
        "state": "Maharashtra",
        "pincode": "411001",
        "certificate_url": "https://blobs.example/cert.pdf",
        "address_proof_url": "https://blobs.example/address.pdf",
        "identity_proof_url": "https://blobs.example/id.pdf",
        "declaration_accepted": True,
    }


async def create_registration(
    db: AsyncSession,
    organization_id: str,
    status: RegistrationStatus = RegistrationStatus.APPROVED,
    organization_name: str = "Test Organization",
) -> OrganizationRegistration:
    """Registration factory that bypasses the review workflow."""
    registration = OrganizationRegistration(
        organization_id=organization_id,
        organization_name=organization_name,
        organization_type=OrganizationType.NGO,
        registration_number=f"REG-{organization_id}",
        city="Pune",
        state="Maharashtra",
        certificate_url="https://blobs.example/cert.pdf",
        address_proof_url="https://blobs.example/address.pdf",
        identity_proof_url="https://blobs.example/id.pdf",
        declaration_accepted=True,
        status=status,
    )
    db.add(registration)
    await db.flush()
    return registration


async def create_need_request(
    db: AsyncSession,
    organization_id: str,
    required_quantity: float = 20,
    category: RequestCategory = RequestCategory.FOOD,
    status: RequestStatus = RequestStatus.APPROVED,
) -> NeedRequest:
    """Need-request factory that bypasses creation checks."""
    need_request = NeedRequest(
        organization_id=organization_id,
        title=f"{category.value.capitalize()} request",
        category=category,
        required_quantity=required_quantity,
        urgency_level=UrgencyLevel.MEDIUM,
        description="Monthly supplies for the community kitchen",
        details={},
        status=status,
    )
    db.add(need_request)
    await db.flush()
    return need_request


async def create_donation(
    db: AsyncSession,
    quantity: float,
    category: RequestCategory = RequestCategory.FOOD,
    donor_id: str = DONOR_ID,
) -> Donation:
    """Unassigned donation factory."""
    donation = Donation(
        donor_id=donor_id,
        category=category,
        quantity=quantity,
        unit=DonationUnit.KG,
        status=DonationStatus.PENDING,
    )
    db.add(donation)
    await db.flush()
    return donation


@pytest_asyncio.fixture
async def approved_org(db: AsyncSession) -> OrganizationRegistration:
    return await create_registration(db, "org-a")


@pytest_asyncio.fixture
async def other_approved_org(db: AsyncSession) -> OrganizationRegistration:
    return await create_registration(db, "org-b", organization_name="Other Organization")
