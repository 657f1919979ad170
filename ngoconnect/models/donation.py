"""Donation model."""
from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from ngoconnect.models.base import BaseModel, enum_column_type
from ngoconnect.models.enums import DonationStatus, DonationUnit, RequestCategory


class Donation(BaseModel):
    """Donor-submitted item/quantity.

    ``assigned_organization_id`` and ``assigned_request_id`` are written once,
    by a conditional update that only matches unassigned rows.
    """

    __tablename__ = "donations"

    donor_id = Column(String(128), nullable=False, index=True)
    category = Column(
        enum_column_type(RequestCategory, "donation_category"),
        nullable=False,
    )
    quantity = Column(Float, nullable=False)
    unit = Column(
        enum_column_type(DonationUnit, "donation_unit"),
        nullable=False,
        default=DonationUnit.ITEMS,
    )
    notes = Column(Text, nullable=True)
    status = Column(
        enum_column_type(DonationStatus, "donation_status"),
        nullable=False,
        default=DonationStatus.PENDING,
        index=True,
    )

    assigned_organization_id = Column(String(128), nullable=True, index=True)
    assigned_request_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("need_requests.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    assigned_by = Column(String(128), nullable=True)

    assigned_request = relationship("NeedRequest", back_populates="donations")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="donation_quantity_positive"),
        CheckConstraint(
            "assigned_request_id IS NULL OR assigned_organization_id IS NOT NULL",
            name="donation_request_requires_organization",
        ),
        Index("idx_donations_org_request", "assigned_organization_id", "assigned_request_id"),
    )

    @property
    def is_assigned(self) -> bool:
        return self.assigned_organization_id is not None

    def __repr__(self) -> str:
        return (
            f"<Donation(id={self.id}, quantity={self.quantity}, "
            f"assigned_organization_id={self.assigned_organization_id})>"
        )
