"""Donation submission and assignment."""
import logging
import math
from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, datetime, tzinfo
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.core.config import get_settings
from ngoconnect.core.exceptions import (
    ConflictError,
    ConsistencyError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from ngoconnect.core.metrics import DONATION_ASSIGNMENTS_TOTAL
from ngoconnect.core.security import Principal
from ngoconnect.core.structured_logging import log_json
from ngoconnect.core.time_windows import count_by_month, trailing_months
from ngoconnect.models.donation import Donation
from ngoconnect.models.enums import (
    AuditAction,
    DonationStatus,
    DonationUnit,
    PrincipalRole,
    RegistrationStatus,
    RequestCategory,
)
from ngoconnect.models.need_request import NeedRequest
from ngoconnect.schemas.donation import DonationResponse, DonorMonthlyActivity, DonorSummary
from ngoconnect.schemas.fulfillment import CategoryTotal
from ngoconnect.services.audit_service import AuditService
from ngoconnect.services.notification_service import NotificationService
from ngoconnect.services.registration_service import RegistrationService

logger = logging.getLogger(__name__)


class DonationService:
    """Service for donor submissions and administrative assignment."""

    QUANTITY_MAX = 1_000_000
    RECENT_DONATIONS = 5
    ACTIVITY_MONTHS = 12

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        """Initialize donation service.

        Args:
            db: Database session
            notifications: Emitter for assignment notices
        """
        self.db = db
        self.audit_service = AuditService(db)
        self.notifications = notifications or NotificationService(db)
        self.registrations = RegistrationService(db, notifications=self.notifications)

    async def submit_donation(
        self,
        donor_id: str,
        category: RequestCategory | str,
        quantity: float,
        unit: DonationUnit = DonationUnit.ITEMS,
        notes: Optional[str] = None,
    ) -> Donation:
        """Record an unassigned donation.

        Raises:
            ValidationError: on a non-positive quantity or unknown category/unit
        """
        try:
            parsed_category = RequestCategory(category)
        except ValueError:
            allowed = ", ".join(c.value for c in RequestCategory)
            raise ValidationError("category", f"category must be one of: {allowed}")
        try:
            parsed_unit = DonationUnit(unit)
        except ValueError:
            allowed = ", ".join(u.value for u in DonationUnit)
            raise ValidationError("unit", f"unit must be one of: {allowed}")

        if quantity is None or not math.isfinite(quantity):
            raise ValidationError("quantity", "quantity must be a finite number")
        if quantity <= 0:
            raise ValidationError("quantity", "quantity must be greater than 0")
        if quantity > self.QUANTITY_MAX:
            raise ValidationError("quantity", "quantity is too large")

        donation = Donation(
            donor_id=donor_id,
            category=parsed_category,
            quantity=float(quantity),
            unit=parsed_unit,
            notes=notes,
            status=DonationStatus.PENDING,
        )
        self.db.add(donation)
        await self.db.flush()

        await self.audit_service.log(
            action=AuditAction.DONATION_CREATE,
            entity_type="donation",
            entity_id=donation.id,
            actor_id=donor_id,
            diff_json={
                "category": parsed_category.value,
                "quantity": donation.quantity,
                "unit": parsed_unit.value,
            },
        )
        log_json(
            logger,
            logging.INFO,
            "donation_submitted",
            donor_id=donor_id,
            donation_id=str(donation.id),
            category=parsed_category.value,
            quantity=donation.quantity,
        )
        return donation

    async def get_donation(self, donation_id: UUID) -> Donation:
        """Get a donation by ID.

        Raises:
            NotFoundError: if the donation does not exist
        """
        result = await self.db.execute(select(Donation).where(Donation.id == donation_id))
        donation = result.scalar_one_or_none()
        if donation is None:
            raise NotFoundError("Donation not found")
        return donation

    async def get_donation_for(self, principal: Principal, donation_id: UUID) -> Donation:
        """Get a donation on behalf of a caller.

        Administrators see every donation, donors their own, organizations
        those assigned to them. For anyone else a missing donation and a
        foreign one produce the same error so donation IDs cannot be discovered.

        Raises:
            NotFoundError: administrator asked for a missing donation
            PermissionDenied: the donation is absent or not visible to the caller
        """
        if principal.is_admin:
            return await self.get_donation(donation_id)

        visibility = {
            PrincipalRole.DONOR: Donation.donor_id,
            PrincipalRole.NGO: Donation.assigned_organization_id,
        }.get(principal.role)
        if visibility is None:
            raise PermissionDenied("Donation is not accessible to this caller")

        result = await self.db.execute(
            select(Donation).where(Donation.id == donation_id).where(visibility == principal.id)
        )
        donation = result.scalar_one_or_none()
        if donation is None:
            raise PermissionDenied("Donation is not accessible to this caller")
        return donation

    async def assign_donation(
        self,
        donation_id: UUID,
        organization_id: str,
        assigned_by: str,
        request_id: Optional[UUID] = None,
    ) -> Donation:
        """Assign a donation to an organization and, optionally, one of its requests.

        The write only matches a row that is still unassigned, so of two
        concurrent assignments exactly one succeeds and the other gets a
        ConflictError.

        Args:
            donation_id: Donation to assign
            organization_id: Receiving organization
            assigned_by: Administrator performing the assignment
            request_id: Request to earmark the donation for

        Returns:
            The assigned donation

        Raises:
            NotFoundError: donation, organization registration or request missing
            ConflictError: the donation is already assigned
            ConsistencyError: the request belongs to a different organization
            PermissionDenied: the organization is not approved
        """
        donation = await self.get_donation(donation_id)
        if donation.is_assigned:
            self._record_conflict(donation, organization_id)
            raise ConflictError("Donation is already assigned")

        registration = await self.registrations.get_active(organization_id)
        if registration is None:
            raise NotFoundError("Organization registration not found")

        if request_id is not None:
            result = await self.db.execute(select(NeedRequest).where(NeedRequest.id == request_id))
            need_request = result.scalar_one_or_none()
            if need_request is None:
                raise NotFoundError("Request not found")
            if need_request.organization_id != organization_id:
                DONATION_ASSIGNMENTS_TOTAL.labels(outcome="inconsistent").inc()
                raise ConsistencyError(
                    "Request does not belong to the target organization",
                    request_id=str(request_id),
                    organization_id=organization_id,
                )

        if registration.status != RegistrationStatus.APPROVED:
            DONATION_ASSIGNMENTS_TOTAL.labels(outcome="unverified").inc()
            raise PermissionDenied("Organization is not verified")

        assigned_at = datetime.now(UTC)
        result = await self.db.execute(
            update(Donation)
            .where(Donation.id == donation_id)
            .where(Donation.assigned_organization_id.is_(None))
            .values(
                assigned_organization_id=organization_id,
                assigned_request_id=request_id,
                assigned_at=assigned_at,
                assigned_by=assigned_by,
                status=DonationStatus.ASSIGNED,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._record_conflict(donation, organization_id)
            raise ConflictError("Donation was assigned concurrently")

        await self.db.refresh(donation)

        await self.audit_service.log(
            action=AuditAction.DONATION_ASSIGN,
            entity_type="donation",
            entity_id=donation.id,
            organization_id=organization_id,
            actor_id=assigned_by,
            diff_json={
                "assigned_organization_id": organization_id,
                "assigned_request_id": str(request_id) if request_id else None,
            },
        )
        DONATION_ASSIGNMENTS_TOTAL.labels(outcome="assigned").inc()
        log_json(
            logger,
            logging.INFO,
            "donation_assigned",
            donation_id=str(donation.id),
            organization_id=organization_id,
            assigned_request_id=str(request_id) if request_id else None,
            assigned_by=assigned_by,
        )

        await self.notifications.donation_assigned(donation)
        return donation

    def _record_conflict(self, donation: Donation, organization_id: str) -> None:
        DONATION_ASSIGNMENTS_TOTAL.labels(outcome="conflict").inc()
        log_json(
            logger,
            logging.WARNING,
            "donation_assignment_conflict",
            donation_id=str(donation.id),
            organization_id=organization_id,
        )

    async def list_donor_donations(self, donor_id: str) -> list[Donation]:
        """A donor's own donations, newest first."""
        result = await self.db.execute(
            select(Donation)
            .where(Donation.donor_id == donor_id)
            .order_by(Donation.created_at.desc())
        )
        return list(result.scalars().all())

    async def donor_summary(self, donor_id: str, now: Optional[datetime] = None) -> DonorSummary:
        """Dashboard figures for one donor, computed from their donations at read time."""
        donations = await self.list_donor_donations(donor_id)
        return summarize_donor(
            donor_id,
            donations,
            now=now or datetime.now(UTC),
            tz=get_settings().tzinfo,
        )

    async def list_organization_donations(self, organization_id: str) -> list[Donation]:
        """Donations assigned to an organization, most recently assigned first."""
        result = await self.db.execute(
            select(Donation)
            .where(Donation.assigned_organization_id == organization_id)
            .order_by(Donation.assigned_at.desc())
        )
        return list(result.scalars().all())

    async def list_all(
        self,
        status_filter: Optional[DonationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Donation], int]:
        """List donations for administrators.

        Returns:
            Tuple of (donations, total count)
        """
        query = select(Donation).order_by(Donation.created_at.desc())
        count_query = select(func.count()).select_from(Donation)
        if status_filter:
            query = query.where(Donation.status == status_filter)
            count_query = count_query.where(Donation.status == status_filter)

        result = await self.db.execute(query.limit(limit).offset(offset))
        donations = list(result.scalars().all())
        total = (await self.db.execute(count_query)).scalar() or 0
        return donations, total


def summarize_donor(
    donor_id: str,
    donations: Sequence[Donation],
    *,
    now: datetime,
    tz: tzinfo,
) -> DonorSummary:
    """Aggregate a donor's donations (given newest first) into dashboard figures."""
    by_category: dict[RequestCategory, list[float]] = defaultdict(list)
    for donation in donations:
        by_category[donation.category].append(donation.quantity)

    months = trailing_months(now, tz, DonationService.ACTIVITY_MONTHS)
    per_month = count_by_month(months, (d.created_at for d in donations))

    return DonorSummary(
        donor_id=donor_id,
        total_donations=len(donations),
        pending_donations=sum(1 for d in donations if d.status == DonationStatus.PENDING),
        assigned_donations=sum(1 for d in donations if d.status == DonationStatus.ASSIGNED),
        organizations_connected=len(
            {d.assigned_organization_id for d in donations if d.assigned_organization_id}
        ),
        total_quantity=sum(d.quantity for d in donations if math.isfinite(d.quantity)),
        by_category=[
            CategoryTotal(
                category=category,
                donation_count=len(quantities),
                total_quantity=sum(q for q in quantities if math.isfinite(q)),
            )
            for category, quantities in sorted(by_category.items(), key=lambda kv: kv[0].value)
        ],
        recent_donations=[
            DonationResponse.model_validate(d)
            for d in donations[: DonationService.RECENT_DONATIONS]
        ],
        activity=[
            DonorMonthlyActivity(label=month.label, donations=per_month[i])
            for i, month in enumerate(months)
        ],
    )
