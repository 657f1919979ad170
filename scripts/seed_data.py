"""Seed script for development data.

Creates:
- An approved organization (id from SEED_ORG_ID, default "dev-ngo")
- One approved food request for that organization
- Two donations from "dev-donor", one of them assigned to the request

Prints development bearer tokens for an admin, the organization and the donor.
Can be run multiple times safely (skips if the organization already exists).
"""
import asyncio
import os
import sys
from datetime import UTC, datetime
from pathlib import Path

# Add the project root to path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from ngoconnect.core.database import get_db
from ngoconnect.core.security import create_access_token
from ngoconnect.models.enums import (
    DonationUnit,
    OrganizationType,
    RegistrationStatus,
    RequestCategory,
    RequestStatus,
    UrgencyLevel,
)
from ngoconnect.models.organization_registration import OrganizationRegistration
from ngoconnect.services.donation_service import DonationService
from ngoconnect.services.need_request_service import NeedRequestService
from ngoconnect.services.notification_service import NotificationService
from ngoconnect.services.registration_service import RegistrationService

ADMIN_ID = "dev-admin"
DONOR_ID = "dev-donor"


async def seed_data():
    """Seed development data."""
    print("Starting database seeding...")

    org_id = os.environ.get("SEED_ORG_ID", "dev-ngo")

    async for db in get_db():
        notifications = NotificationService(db)
        registrations = RegistrationService(db, notifications=notifications)
        if await registrations.get_active(org_id) is not None:
            print(f"✓ Organization '{org_id}' already registered, skipping")
        else:
            registration = OrganizationRegistration(
                organization_id=org_id,
                organization_name="Dev Community Kitchen",
                organization_type=OrganizationType.NGO,
                registration_number="DEV/2026/0001",
                city="Pune",
                state="Maharashtra",
                certificate_url="https://blobs.example/dev/cert.pdf",
                address_proof_url="https://blobs.example/dev/address.pdf",
                identity_proof_url="https://blobs.example/dev/id.pdf",
                declaration_accepted=True,
                status=RegistrationStatus.APPROVED,
                reviewed_by=ADMIN_ID,
                reviewed_at=datetime.now(UTC),
            )
            db.add(registration)
            await db.flush()
            print(f"✓ Created approved organization '{org_id}'")

            need_request = await NeedRequestService(db, notifications=notifications).create_request(
                organization_id=org_id,
                category=RequestCategory.FOOD.value,
                required_quantity=50,
                urgency_level=UrgencyLevel.HIGH,
                description="Rice and lentils for the weekly community meal",
            )
            need_request.status = RequestStatus.APPROVED
            print(f"✓ Created request {need_request.id}")

            donations = DonationService(db, notifications=notifications)
            first = await donations.submit_donation(
                DONOR_ID, RequestCategory.FOOD, 20, unit=DonationUnit.KG
            )
            await donations.submit_donation(DONOR_ID, RequestCategory.CLOTHING, 15)
            await donations.assign_donation(
                first.id, org_id, assigned_by=ADMIN_ID, request_id=need_request.id
            )
            print("✓ Created donations and assigned one to the request")

        await db.commit()
        await notifications.dispatch()

    print("\n✓ Database seeding completed successfully!")
    print("\nDevelopment tokens:")
    for subject, role in ((ADMIN_ID, "admin"), (org_id, "ngo"), (DONOR_ID, "donor")):
        print(f"  {role}: {create_access_token({'sub': subject, 'role': role})}")


if __name__ == "__main__":
    asyncio.run(seed_data())
