"""Pydantic schemas for organization registration endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ngoconnect.models.enums import OrganizationType, RegistrationStatus


class SubmitRegistrationRequest(BaseModel):
    """Verification submission.

    Mandatory fields are checked by the service so the error names the
    missing field; only shape is enforced here.
    """

    model_config = ConfigDict(extra="forbid")

    organization_name: str | None = Field(None, max_length=100)
    organization_type: OrganizationType = OrganizationType.NGO
    registration_number: str | None = Field(None, max_length=64)
    contact_person: str | None = Field(None, max_length=50)
    phone: str | None = Field(None, max_length=20)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    pincode: str | None = Field(None, max_length=12)
    certificate_url: str | None = None
    address_proof_url: str | None = None
    identity_proof_url: str | None = None
    declaration_accepted: bool = False

    @field_validator(
        "organization_name",
        "registration_number",
        "contact_person",
        "phone",
        "city",
        "state",
        "pincode",
        "certificate_url",
        "address_proof_url",
        "identity_proof_url",
    )
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class ReviewRegistrationRequest(BaseModel):
    """Administrator decision on a pending registration."""

    model_config = ConfigDict(extra="forbid")

    status: RegistrationStatus
    rejection_reason: str | None = Field(None, max_length=2000)

    @field_validator("rejection_reason")
    @classmethod
    def strip_reason(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class RegistrationResponse(BaseModel):
    """Verification record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: str
    organization_name: str
    organization_type: OrganizationType
    registration_number: str
    contact_person: str | None = None
    phone: str | None = None
    city: str
    state: str
    pincode: str | None = None
    certificate_url: str
    address_proof_url: str
    identity_proof_url: str
    status: RegistrationStatus
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    superseded_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class RegistrationListResponse(BaseModel):
    items: list[RegistrationResponse]
    total: int


class RegistrationStatusResponse(BaseModel):
    """Current verification state; ``unregistered`` when nothing was submitted."""

    organization_id: str
    status: RegistrationStatus
    registration: RegistrationResponse | None = None
