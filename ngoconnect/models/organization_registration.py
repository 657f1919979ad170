"""Organization verification record."""
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, String, Text, text

from ngoconnect.models.base import BaseModel, enum_column_type
from ngoconnect.models.enums import OrganizationType, RegistrationStatus


class OrganizationRegistration(BaseModel):
    """Verification record submitted by an NGO or trust.

    An organization keeps every record it ever submitted. The active record is
    the one with ``superseded_at`` unset; a re-submission after rejection
    stamps the rejected record and inserts a fresh pending one.
    """

    __tablename__ = "organization_registrations"

    organization_id = Column(
        String(128),
        nullable=False,
        index=True,
    )
    organization_name = Column(String(100), nullable=False)
    organization_type = Column(
        enum_column_type(OrganizationType, "organization_type"),
        nullable=False,
        default=OrganizationType.NGO,
    )
    registration_number = Column(String(64), nullable=False)
    contact_person = Column(String(50), nullable=True)
    phone = Column(String(20), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    pincode = Column(String(12), nullable=True)

    # Opaque references returned by blob storage
    certificate_url = Column(Text, nullable=False)
    address_proof_url = Column(Text, nullable=False)
    identity_proof_url = Column(Text, nullable=False)

    declaration_accepted = Column(Boolean, nullable=False, default=False)

    status = Column(
        enum_column_type(RegistrationStatus, "registration_status"),
        nullable=False,
        default=RegistrationStatus.PENDING,
        index=True,
    )
    reviewed_by = Column(String(128), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    superseded_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # At most one active record per organization
        Index(
            "uq_registrations_active_org",
            "organization_id",
            unique=True,
            postgresql_where=text("superseded_at IS NULL"),
            sqlite_where=text("superseded_at IS NULL"),
        ),
        CheckConstraint(
            "status <> 'unregistered'",
            name="registration_status_persisted",
        ),
        CheckConstraint(
            "LENGTH(organization_name) > 0",
            name="registration_name_not_empty",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.superseded_at is None

    def __repr__(self) -> str:
        return (
            f"<OrganizationRegistration(id={self.id}, organization_id={self.organization_id}, "
            f"status={self.status})>"
        )
