"""AuditEvent model."""

from sqlalchemy import Column, Index, String, Uuid

from ngoconnect.models.base import BaseModel, JSONType, enum_column_type
from ngoconnect.models.enums import AuditAction


class AuditEvent(BaseModel):
    """Append-only trail of state-changing actions.

    Registration reviews, request status changes and donation assignments all
    land here with a before/after diff.
    """

    __tablename__ = "audit_events"

    organization_id = Column(String(128), nullable=True, index=True)
    actor_id = Column(String(128), nullable=True, index=True)
    action = Column(
        enum_column_type(AuditAction, "audit_action"),
        nullable=False,
    )
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Uuid(as_uuid=True), nullable=False)
    diff_json = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditEvent(id={self.id}, action={self.action}, entity_type={self.entity_type})>"
