"""Need-request ledger."""
import logging
import math
from datetime import UTC, date, datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.core.config import get_settings
from ngoconnect.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from ngoconnect.core.request_details import details_to_json, parse_details
from ngoconnect.core.structured_logging import log_json
from ngoconnect.core.time_windows import window_start
from ngoconnect.core.verification_workflow import (
    get_allowed_request_transitions,
    is_valid_request_transition,
)
from ngoconnect.models.enums import (
    AuditAction,
    RequestCategory,
    RequestStatus,
    RequestWindow,
    UrgencyLevel,
)
from ngoconnect.models.need_request import NeedRequest
from ngoconnect.services.audit_service import AuditService
from ngoconnect.services.notification_service import NotificationService
from ngoconnect.services.registration_service import RegistrationService

logger = logging.getLogger(__name__)


class NeedRequestService:
    """Service for creating, listing and transitioning need-requests."""

    DESCRIPTION_MIN = 20
    DESCRIPTION_MAX = 1000
    TITLE_MIN = 5
    TITLE_MAX = 100
    QUANTITY_MAX = 1_000_000

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        """Initialize need-request service.

        Args:
            db: Database session
            notifications: Emitter for status changes
        """
        self.db = db
        self.audit_service = AuditService(db)
        self.notifications = notifications or NotificationService(db)
        self.registrations = RegistrationService(db, notifications=self.notifications)

    def _validate(
        self,
        title: Optional[str],
        category: str,
        required_quantity: float,
        description: str,
        needed_by: Optional[date],
        today: date,
    ) -> RequestCategory:
        """Validate creation input.

        Returns:
            The parsed category

        Raises:
            ValidationError: naming the offending field
        """
        title = (title or "").strip()
        if title and not self.TITLE_MIN <= len(title) <= self.TITLE_MAX:
            raise ValidationError(
                "title",
                f"title must be between {self.TITLE_MIN} and {self.TITLE_MAX} characters",
            )

        try:
            parsed_category = RequestCategory(category)
        except ValueError:
            allowed = ", ".join(c.value for c in RequestCategory)
            raise ValidationError("category", f"category must be one of: {allowed}")

        if required_quantity is None or not math.isfinite(required_quantity):
            raise ValidationError("required_quantity", "required_quantity must be a finite number")
        if required_quantity <= 0:
            raise ValidationError("required_quantity", "required_quantity must be greater than 0")
        if required_quantity > self.QUANTITY_MAX:
            raise ValidationError("required_quantity", "required_quantity is too large")

        description = (description or "").strip()
        if not self.DESCRIPTION_MIN <= len(description) <= self.DESCRIPTION_MAX:
            raise ValidationError(
                "description",
                f"description must be between {self.DESCRIPTION_MIN} and "
                f"{self.DESCRIPTION_MAX} characters",
            )

        if needed_by is not None and needed_by < today:
            raise ValidationError("needed_by", "needed_by cannot be in the past")

        return parsed_category

    async def create_request(
        self,
        organization_id: str,
        category: str,
        required_quantity: float,
        urgency_level: UrgencyLevel,
        description: str,
        needed_by: Optional[date] = None,
        title: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> NeedRequest:
        """Create a need-request for an approved organization.

        Args:
            organization_id: Owning organization
            category: One of the RequestCategory values
            required_quantity: Positive, unit-less target quantity
            urgency_level: Informational urgency
            description: 20-1000 characters
            needed_by: Optional deadline, not in the past
            title: 5-100 characters; derived from the category when omitted
            details: Category-specific attributes, validated when supplied

        Returns:
            Created NeedRequest in PENDING status

        Raises:
            ValidationError: if any input is out of range
            PermissionDenied: if the organization is not approved
        """
        settings = get_settings()
        today = datetime.now(settings.tzinfo).date()
        parsed_category = self._validate(
            title, category, required_quantity, description, needed_by, today
        )
        try:
            urgency = UrgencyLevel(urgency_level)
        except ValueError:
            raise ValidationError("urgency_level", "urgency_level must be one of: low, medium, high")
        stored_details: dict[str, Any] = {}
        if details:
            stored_details = details_to_json(parse_details(parsed_category, details))
        title = (title or "").strip() or f"{parsed_category.value.capitalize()} request"

        await self.registrations.require_approved(organization_id)

        need_request = NeedRequest(
            organization_id=organization_id,
            title=title,
            category=parsed_category,
            required_quantity=float(required_quantity),
            urgency_level=urgency,
            description=description.strip(),
            needed_by=needed_by,
            details=stored_details,
            status=RequestStatus.PENDING,
        )
        self.db.add(need_request)
        await self.db.flush()

        await self.audit_service.log(
            action=AuditAction.REQUEST_CREATE,
            entity_type="need_request",
            entity_id=need_request.id,
            organization_id=organization_id,
            actor_id=organization_id,
            diff_json={
                "category": parsed_category.value,
                "required_quantity": need_request.required_quantity,
                "status": RequestStatus.PENDING.value,
            },
        )
        log_json(
            logger,
            logging.INFO,
            "request_created",
            organization_id=organization_id,
            request_id=str(need_request.id),
            category=parsed_category.value,
            required_quantity=need_request.required_quantity,
        )
        return need_request

    async def list_requests(
        self,
        organization_id: str,
        window: Optional[RequestWindow] = None,
        status_filter: Optional[RequestStatus] = None,
        now: Optional[datetime] = None,
    ) -> list[NeedRequest]:
        """List an organization's requests, newest first.

        Args:
            organization_id: Owning organization
            window: Optional trailing creation-time window
            status_filter: Optional status filter
            now: Reference instant (defaults to the current time)

        Returns:
            Matching requests
        """
        query = (
            select(NeedRequest)
            .where(NeedRequest.organization_id == organization_id)
            .order_by(NeedRequest.created_at.desc())
        )
        if window is not None:
            settings = get_settings()
            cutoff = window_start(window, now or datetime.now(UTC), settings.tzinfo)
            query = query.where(NeedRequest.created_at >= cutoff)
        if status_filter is not None:
            query = query.where(NeedRequest.status == status_filter)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_by_id(self, request_id: UUID) -> NeedRequest:
        """Get any request by ID (administrators and internal callers).

        Raises:
            NotFoundError: if the request does not exist
        """
        result = await self.db.execute(select(NeedRequest).where(NeedRequest.id == request_id))
        need_request = result.scalar_one_or_none()
        if need_request is None:
            raise NotFoundError("Request not found")
        return need_request

    async def get_request(self, organization_id: str, request_id: UUID) -> NeedRequest:
        """Get a request on behalf of its owner.

        A missing request and one owned by another organization produce the
        same error so request IDs cannot be discovered.

        Raises:
            PermissionDenied: if the request is absent or not owned by the caller
        """
        result = await self.db.execute(
            select(NeedRequest)
            .where(NeedRequest.id == request_id)
            .where(NeedRequest.organization_id == organization_id)
        )
        need_request = result.scalar_one_or_none()
        if need_request is None:
            raise PermissionDenied("Request is not accessible to this organization")
        return need_request

    async def list_all(
        self,
        status_filter: Optional[RequestStatus] = None,
        category: Optional[RequestCategory] = None,
        urgency_level: Optional[UrgencyLevel] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[NeedRequest], int]:
        """List requests across organizations for administrators.

        Returns:
            Tuple of (requests, total count)
        """
        filters = []
        if status_filter is not None:
            filters.append(NeedRequest.status == status_filter)
        if category is not None:
            filters.append(NeedRequest.category == category)
        if urgency_level is not None:
            filters.append(NeedRequest.urgency_level == urgency_level)

        query = select(NeedRequest).where(*filters).order_by(NeedRequest.created_at.desc())
        count_query = select(func.count()).select_from(NeedRequest).where(*filters)

        result = await self.db.execute(query.limit(limit).offset(offset))
        requests = list(result.scalars().all())
        total = (await self.db.execute(count_query)).scalar() or 0
        return requests, total

    async def change_status(
        self,
        request_id: UUID,
        new_status: RequestStatus,
        actor_id: str,
        comment: Optional[str] = None,
    ) -> NeedRequest:
        """Apply an administrative status transition.

        Fulfillment figures never move a request to FULFILLED on their own;
        this is the only way a request changes status.

        Raises:
            NotFoundError: if the request does not exist
            ConflictError: if the transition is not allowed
        """
        need_request = await self.get_by_id(request_id)
        previous = need_request.status

        if not is_valid_request_transition(previous, new_status):
            allowed = ", ".join(s.value for s in get_allowed_request_transitions(previous))
            raise ConflictError(
                f"Invalid status transition from {previous.value} to {new_status.value}. "
                f"Allowed: {allowed or 'none'}",
            )

        need_request.status = new_status
        await self.db.flush()

        await self.audit_service.log_status_change(
            action=AuditAction.REQUEST_STATUS_CHANGE,
            entity_type="need_request",
            entity_id=need_request.id,
            before=previous.value,
            after=new_status.value,
            organization_id=need_request.organization_id,
            actor_id=actor_id,
            comment=comment,
        )
        log_json(
            logger,
            logging.INFO,
            "request_status_changed",
            organization_id=need_request.organization_id,
            request_id=str(need_request.id),
            from_status=previous.value,
            to_status=new_status.value,
        )

        await self.notifications.request_status_changed(need_request, comment=comment)
        return need_request
