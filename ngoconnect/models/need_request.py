"""Need-request model."""
from sqlalchemy import CheckConstraint, Column, Date, Float, Index, String, Text
from sqlalchemy.orm import relationship

from ngoconnect.models.base import BaseModel, JSONType, enum_column_type
from ngoconnect.models.enums import RequestCategory, RequestStatus, UrgencyLevel


class NeedRequest(BaseModel):
    """A declared requirement posted by a verified organization.

    Requests are never deleted; historical fulfillment figures depend on them.
    """

    __tablename__ = "need_requests"

    organization_id = Column(String(128), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    category = Column(
        enum_column_type(RequestCategory, "request_category"),
        nullable=False,
        index=True,
    )
    required_quantity = Column(Float, nullable=False)
    urgency_level = Column(
        enum_column_type(UrgencyLevel, "urgency_level"),
        nullable=False,
        default=UrgencyLevel.MEDIUM,
    )
    description = Column(Text, nullable=False)
    needed_by = Column(Date, nullable=True)
    details = Column(JSONType, nullable=False, default=dict)
    status = Column(
        enum_column_type(RequestStatus, "request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )

    donations = relationship("Donation", back_populates="assigned_request")

    __table_args__ = (
        CheckConstraint("required_quantity > 0", name="need_request_quantity_positive"),
        Index("idx_need_requests_org_created", "organization_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<NeedRequest(id={self.id}, category={self.category}, "
            f"required_quantity={self.required_quantity}, status={self.status})>"
        )
