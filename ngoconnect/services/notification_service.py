"""Notification emitter and in-app inbox.

Each emitted notification is written to the recipient's inbox in the same
transaction as the state change that triggered it and queued on the service.
Callers run ``dispatch`` after committing, so an external message never
announces a change that was rolled back. Channel failures are logged and
counted, never raised: delivery is best effort and must not undo the
triggering operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

import httpx
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.core.config import get_settings
from ngoconnect.core.exceptions import NotFoundError
from ngoconnect.core.metrics import NOTIFICATION_FAILURES_TOTAL
from ngoconnect.core.structured_logging import log_json
from ngoconnect.models.donation import Donation
from ngoconnect.models.enums import NotificationCategory, RegistrationStatus, RequestStatus
from ngoconnect.models.need_request import NeedRequest
from ngoconnect.models.notification import Notification
from ngoconnect.models.organization_registration import OrganizationRegistration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundNotification:
    recipient_id: str
    category: NotificationCategory
    title: str
    message: str
    related_id: str | None = None


class NotificationChannel(Protocol):
    """External delivery channel (push, email, webhook)."""

    async def deliver(self, notification: OutboundNotification) -> None: ...


class LogChannel:
    """Channel used when no external endpoint is configured."""

    async def deliver(self, notification: OutboundNotification) -> None:
        log_json(
            logger,
            logging.INFO,
            "notification_dispatched",
            recipient_id=notification.recipient_id,
            category=notification.category.value,
        )


class WebhookChannel:
    """POST each notification as JSON to a delivery gateway."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def deliver(self, notification: OutboundNotification) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.url,
                json={
                    "recipient_id": notification.recipient_id,
                    "category": notification.category.value,
                    "title": notification.title,
                    "message": notification.message,
                },
            )
            response.raise_for_status()


def default_channel() -> NotificationChannel:
    settings = get_settings()
    if settings.notification_webhook_url:
        return WebhookChannel(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout_seconds,
        )
    return LogChannel()


class NotificationService:
    """Emit notifications and serve the recipient inbox."""

    def __init__(self, db: AsyncSession, channel: NotificationChannel | None = None):
        self.db = db
        self.channel = channel if channel is not None else default_channel()
        self.outbox: list[OutboundNotification] = []

    async def emit(
        self,
        recipient_id: str,
        category: NotificationCategory,
        title: str,
        message: str,
        related_id: str | None = None,
        related_type: str | None = None,
    ) -> Notification:
        """Record an inbox entry and queue it for external delivery.

        Returns:
            The inbox Notification; nothing leaves the process until ``dispatch``
        """
        notification = Notification(
            recipient_id=recipient_id,
            category=category,
            title=title,
            message=message,
            related_id=related_id,
            related_type=related_type,
            is_read=False,
        )
        self.db.add(notification)
        await self.db.flush()

        self.outbox.append(
            OutboundNotification(
                recipient_id=recipient_id,
                category=category,
                title=title,
                message=message,
                related_id=related_id,
            )
        )
        return notification

    async def dispatch(self) -> int:
        """Hand queued notifications to the channel; call once the transaction committed.

        Returns:
            Number of notifications the channel accepted
        """
        outbox, self.outbox = self.outbox, []
        delivered = 0
        for outbound in outbox:
            try:
                await self.channel.deliver(outbound)
            except Exception as exc:
                NOTIFICATION_FAILURES_TOTAL.labels(category=outbound.category.value).inc()
                log_json(
                    logger,
                    logging.WARNING,
                    "notification_delivery_failed",
                    recipient_id=outbound.recipient_id,
                    category=outbound.category.value,
                    related_id=outbound.related_id,
                    error=str(exc),
                    exception=exc.__class__.__name__,
                )
            else:
                delivered += 1
        return delivered

    async def registration_reviewed(self, registration: OrganizationRegistration) -> Notification:
        """Tell an organization the outcome of its verification."""
        if registration.status == RegistrationStatus.APPROVED:
            return await self.emit(
                recipient_id=registration.organization_id,
                category=NotificationCategory.REGISTRATION_APPROVED,
                title="Registration Approved",
                message=(
                    f'Congratulations! Your registration for "{registration.organization_name}" '
                    "has been approved. You can now create requests."
                ),
                related_id=str(registration.id),
                related_type="registration",
            )

        reason = f" Reason: {registration.rejection_reason}" if registration.rejection_reason else ""
        return await self.emit(
            recipient_id=registration.organization_id,
            category=NotificationCategory.REGISTRATION_REJECTED,
            title="Registration Rejected",
            message=(
                f'Your registration for "{registration.organization_name}" '
                f"has been rejected.{reason}"
            ),
            related_id=str(registration.id),
            related_type="registration",
        )

    async def request_status_changed(
        self,
        request: NeedRequest,
        comment: str | None = None,
    ) -> Notification | None:
        """Notify the owner of an administrative request transition."""
        categories = {
            RequestStatus.APPROVED: (NotificationCategory.REQUEST_APPROVED, "Request Approved"),
            RequestStatus.REJECTED: (NotificationCategory.REQUEST_REJECTED, "Request Rejected"),
            RequestStatus.FULFILLED: (NotificationCategory.REQUEST_FULFILLED, "Request Fulfilled"),
        }
        if request.status not in categories:
            return None

        category, title = categories[request.status]
        message = f'Your request "{request.title}" is now {request.status.value}.'
        if comment:
            message += f" Note: {comment}"
        return await self.emit(
            recipient_id=request.organization_id,
            category=category,
            title=title,
            message=message,
            related_id=str(request.id),
            related_type="request",
        )

    async def donation_assigned(self, donation: Donation) -> Notification:
        """Inform an organization that a donation was assigned to it."""
        target = "your organization"
        if donation.assigned_request_id is not None:
            target = f"your request {str(donation.assigned_request_id)[:8].upper()}"
        return await self.emit(
            recipient_id=donation.assigned_organization_id,
            category=NotificationCategory.DONATION_ASSIGNED,
            title="New Donation Assigned",
            message=(
                f"A {donation.category.value} donation of {donation.quantity:g} "
                f"{donation.unit.value} has been assigned to {target}."
            ),
            related_id=str(donation.id),
            related_type="donation",
        )

    async def list_for_recipient(
        self,
        recipient_id: str,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Notification], int, int]:
        """Return (page, total, unread count), newest first."""
        query = select(Notification).where(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc()).limit(limit).offset(offset)

        result = await self.db.execute(query)
        items = list(result.scalars().all())

        total_query = select(func.count()).select_from(Notification).where(
            Notification.recipient_id == recipient_id
        )
        if unread_only:
            total_query = total_query.where(Notification.is_read.is_(False))
        total = (await self.db.execute(total_query)).scalar() or 0

        unread = (
            await self.db.execute(
                select(func.count())
                .select_from(Notification)
                .where(Notification.recipient_id == recipient_id)
                .where(Notification.is_read.is_(False))
            )
        ).scalar() or 0

        return items, total, unread

    async def mark_read(self, recipient_id: str, notification_id: UUID) -> Notification:
        """Mark one of the recipient's notifications as read.

        Raises:
            NotFoundError: if it does not exist or belongs to someone else
        """
        result = await self.db.execute(
            select(Notification)
            .where(Notification.id == notification_id)
            .where(Notification.recipient_id == recipient_id)
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError("Notification not found")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
            await self.db.flush()
        return notification

    async def mark_all_read(self, recipient_id: str) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id)
            .where(Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.now(UTC))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
