"""Registration service: the organization verification lifecycle."""
import logging
import re
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from ngoconnect.core.metrics import REGISTRATION_REVIEWS_TOTAL
from ngoconnect.core.structured_logging import log_json
from ngoconnect.core.verification_workflow import can_submit, is_valid_transition
from ngoconnect.models.enums import AuditAction, RegistrationStatus
from ngoconnect.models.organization_registration import OrganizationRegistration
from ngoconnect.schemas.registration import SubmitRegistrationRequest
from ngoconnect.services.audit_service import AuditService
from ngoconnect.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class RegistrationService:
    """Service for submitting and reviewing organization registrations."""

    # Field -> label, in the order a submission form presents them
    REQUIRED_FIELDS: dict[str, str] = {
        "organization_name": "Organization name",
        "registration_number": "Registration number",
        "city": "City",
        "state": "State",
        "certificate_url": "Registration certificate",
        "address_proof_url": "Address proof",
        "identity_proof_url": "Identity proof",
    }

    PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")
    PINCODE_PATTERN = re.compile(r"^\d{6}$")

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        """Initialize registration service.

        Args:
            db: Database session
            notifications: Emitter for review outcomes (defaults to the configured channel)
        """
        self.db = db
        self.audit_service = AuditService(db)
        self.notifications = notifications or NotificationService(db)

    def _validate_submission(self, request: SubmitRegistrationRequest) -> None:
        """Reject submissions with missing mandatory fields or documents.

        Raises:
            ValidationError: naming the first offending field
        """
        for field, label in self.REQUIRED_FIELDS.items():
            if not getattr(request, field):
                raise ValidationError(field, f"{label} is required")

        if request.phone and not self.PHONE_PATTERN.match(request.phone):
            raise ValidationError("phone", "Please provide a valid 10-digit mobile number")

        if request.pincode and not self.PINCODE_PATTERN.match(request.pincode):
            raise ValidationError("pincode", "Pincode must be exactly 6 digits")

        if not request.declaration_accepted:
            raise ValidationError("declaration_accepted", "Declaration must be accepted")

    async def get_active(self, organization_id: str) -> Optional[OrganizationRegistration]:
        """Return the organization's current record, if it ever submitted one."""
        result = await self.db.execute(
            select(OrganizationRegistration)
            .where(OrganizationRegistration.organization_id == organization_id)
            .where(OrganizationRegistration.superseded_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def get_status(self, organization_id: str) -> RegistrationStatus:
        """Current verification status; UNREGISTERED when no record exists."""
        registration = await self.get_active(organization_id)
        if registration is None:
            return RegistrationStatus.UNREGISTERED
        return registration.status

    async def get_by_id(self, registration_id: UUID) -> OrganizationRegistration:
        """Get a registration record by ID.

        Raises:
            NotFoundError: if no such record exists
        """
        result = await self.db.execute(
            select(OrganizationRegistration).where(OrganizationRegistration.id == registration_id)
        )
        registration = result.scalar_one_or_none()
        if registration is None:
            raise NotFoundError("Registration not found")
        return registration

    async def history(self, organization_id: str) -> list[OrganizationRegistration]:
        """All records the organization submitted, newest first."""
        result = await self.db.execute(
            select(OrganizationRegistration)
            .where(OrganizationRegistration.organization_id == organization_id)
            .order_by(OrganizationRegistration.created_at.desc())
        )
        return list(result.scalars().all())

    async def list(
        self,
        status_filter: Optional[RegistrationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[OrganizationRegistration], int]:
        """List active registrations for review.

        Returns:
            Tuple of (registrations, total count)
        """
        query = (
            select(OrganizationRegistration)
            .where(OrganizationRegistration.superseded_at.is_(None))
            .order_by(OrganizationRegistration.created_at.desc())
        )
        count_query = (
            select(func.count())
            .select_from(OrganizationRegistration)
            .where(OrganizationRegistration.superseded_at.is_(None))
        )
        if status_filter:
            query = query.where(OrganizationRegistration.status == status_filter)
            count_query = count_query.where(OrganizationRegistration.status == status_filter)

        result = await self.db.execute(query.limit(limit).offset(offset))
        registrations = list(result.scalars().all())
        total = (await self.db.execute(count_query)).scalar() or 0
        return registrations, total

    async def submit(
        self,
        organization_id: str,
        request: SubmitRegistrationRequest,
    ) -> OrganizationRegistration:
        """Submit (or re-submit after rejection) a verification request.

        A rejected record is kept for the audit trail and superseded by the new
        pending one.

        Args:
            organization_id: Identity of the submitting organization
            request: Submitted details and document references

        Returns:
            The new pending registration

        Raises:
            ValidationError: missing field/document or declaration not accepted
            ConflictError: a pending or approved registration already exists
        """
        self._validate_submission(request)

        current = await self.get_active(organization_id)
        current_status = current.status if current else RegistrationStatus.UNREGISTERED
        if not can_submit(current_status):
            raise ConflictError(
                f"A registration is already {current_status.value} for this organization",
            )

        if current is not None:
            current.superseded_at = datetime.now(UTC)
            await self.db.flush()

        registration = OrganizationRegistration(
            organization_id=organization_id,
            organization_name=request.organization_name,
            organization_type=request.organization_type,
            registration_number=request.registration_number,
            contact_person=request.contact_person,
            phone=request.phone,
            city=request.city,
            state=request.state,
            pincode=request.pincode,
            certificate_url=request.certificate_url,
            address_proof_url=request.address_proof_url,
            identity_proof_url=request.identity_proof_url,
            declaration_accepted=True,
            status=RegistrationStatus.PENDING,
        )
        self.db.add(registration)

        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("A registration was submitted concurrently for this organization")

        await self.audit_service.log(
            action=AuditAction.REGISTRATION_SUBMIT,
            entity_type="registration",
            entity_id=registration.id,
            organization_id=organization_id,
            actor_id=organization_id,
            diff_json={
                "status": RegistrationStatus.PENDING.value,
                "previous_registration_id": str(current.id) if current else None,
                "previous_status": current_status.value,
            },
        )
        log_json(
            logger,
            logging.INFO,
            "registration_submitted",
            organization_id=organization_id,
            registration_id=str(registration.id),
            resubmission=current is not None,
        )
        return registration

    async def review(
        self,
        registration_id: UUID,
        decision: RegistrationStatus,
        reviewer_id: str,
        rejection_reason: Optional[str] = None,
    ) -> OrganizationRegistration:
        """Apply an administrator's decision to a pending registration.

        Args:
            registration_id: Registration under review
            decision: APPROVED or REJECTED
            reviewer_id: Administrator making the decision
            rejection_reason: Shown to the organization when rejecting

        Returns:
            Updated registration

        Raises:
            NotFoundError: if the registration does not exist
            ConflictError: if the transition is not allowed (e.g. already reviewed,
                or the record was superseded by a re-submission)
        """
        registration = await self.get_by_id(registration_id)

        if not registration.is_active:
            raise ConflictError("Registration has been superseded by a newer submission")

        previous = registration.status
        if decision not in (RegistrationStatus.APPROVED, RegistrationStatus.REJECTED) or not (
            is_valid_transition(previous, decision)
        ):
            raise ConflictError(
                f"Invalid status transition from {previous.value} to {decision.value}",
            )

        registration.status = decision
        registration.reviewed_by = reviewer_id
        registration.reviewed_at = datetime.now(UTC)
        registration.rejection_reason = (
            rejection_reason if decision == RegistrationStatus.REJECTED else None
        )
        await self.db.flush()

        await self.audit_service.log_status_change(
            action=(
                AuditAction.REGISTRATION_APPROVE
                if decision == RegistrationStatus.APPROVED
                else AuditAction.REGISTRATION_REJECT
            ),
            entity_type="registration",
            entity_id=registration.id,
            before=previous.value,
            after=decision.value,
            organization_id=registration.organization_id,
            actor_id=reviewer_id,
            rejection_reason=registration.rejection_reason,
        )
        REGISTRATION_REVIEWS_TOTAL.labels(outcome=decision.value).inc()
        log_json(
            logger,
            logging.INFO,
            "registration_reviewed",
            organization_id=registration.organization_id,
            registration_id=str(registration.id),
            status=decision.value,
            reviewer_id=reviewer_id,
        )

        await self.notifications.registration_reviewed(registration)
        return registration

    async def approve(self, registration_id: UUID, reviewer_id: str) -> OrganizationRegistration:
        return await self.review(registration_id, RegistrationStatus.APPROVED, reviewer_id)

    async def reject(
        self,
        registration_id: UUID,
        reviewer_id: str,
        reason: Optional[str] = None,
    ) -> OrganizationRegistration:
        return await self.review(registration_id, RegistrationStatus.REJECTED, reviewer_id, reason)

    async def require_approved(self, organization_id: str) -> OrganizationRegistration:
        """Guard for every organization capability.

        Raises:
            PermissionDenied: unless the organization's active record is approved
        """
        registration = await self.get_active(organization_id)
        if registration is None or registration.status != RegistrationStatus.APPROVED:
            raise PermissionDenied("Organization is not verified")
        return registration
