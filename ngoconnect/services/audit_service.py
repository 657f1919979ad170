"""Audit service for recording state-changing actions."""
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.models.audit_event import AuditEvent
from ngoconnect.models.enums import AuditAction


class AuditService:
    """Service for creating and reading audit trail entries."""

    def __init__(self, db: AsyncSession):
        """Initialize audit service.

        Args:
            db: Database session
        """
        self.db = db

    async def log(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID,
        organization_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        diff_json: Optional[dict[str, Any]] = None,
    ) -> AuditEvent:
        """Create an audit log entry.

        Args:
            action: Action being performed
            entity_type: Type of entity being acted upon
            entity_id: ID of entity being acted upon
            organization_id: Organization the entity belongs to, if any
            actor_id: Principal performing the action (None for system actions)
            diff_json: Before/after diff or creation snapshot

        Returns:
            Created AuditEvent instance
        """
        audit_event = AuditEvent(
            organization_id=organization_id,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            diff_json=diff_json,
        )
        self.db.add(audit_event)
        await self.db.flush()
        return audit_event

    async def log_status_change(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID,
        before: str,
        after: str,
        organization_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        **extra: Any,
    ) -> AuditEvent:
        """Log a lifecycle transition as a before/after status diff."""
        diff: dict[str, Any] = {
            "before": {"status": before},
            "after": {"status": after},
        }
        if extra:
            diff["after"].update(extra)
        return await self.log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            organization_id=organization_id,
            actor_id=actor_id,
            diff_json=diff,
        )

    async def list_for_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        """Return the trail of one entity, oldest first."""
        result = await self.db.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type)
            .where(AuditEvent.entity_id == entity_id)
            .order_by(AuditEvent.created_at.asc())
        )
        return list(result.scalars().all())
