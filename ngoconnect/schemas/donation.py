"""Pydantic schemas for donation endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ngoconnect.models.enums import DonationStatus, DonationUnit, RequestCategory
from ngoconnect.schemas.fulfillment import CategoryTotal


class SubmitDonationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: RequestCategory
    quantity: float
    unit: DonationUnit = DonationUnit.ITEMS
    notes: str | None = Field(None, max_length=2000)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class AssignDonationRequest(BaseModel):
    """Earmark a donation for an organization and, optionally, one of its requests."""

    model_config = ConfigDict(extra="forbid")

    organization_id: str = Field(..., min_length=1, max_length=128)
    request_id: UUID | None = None


class DonationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    donor_id: str
    category: RequestCategory
    quantity: float
    unit: DonationUnit
    notes: str | None = None
    status: DonationStatus
    assigned_organization_id: str | None = None
    assigned_request_id: UUID | None = None
    assigned_at: datetime | None = None
    assigned_by: str | None = None
    created_at: datetime
    updated_at: datetime


class DonationListResponse(BaseModel):
    items: list[DonationResponse]
    total: int


class DonorMonthlyActivity(BaseModel):
    label: str = Field(..., description="Calendar month in the configured zone, YYYY-MM")
    donations: int


class DonorSummary(BaseModel):
    """A donor's dashboard: counts, impact and recent activity."""

    donor_id: str
    total_donations: int
    pending_donations: int
    assigned_donations: int
    organizations_connected: int
    total_quantity: float
    by_category: list[CategoryTotal]
    recent_donations: list[DonationResponse]
    activity: list[DonorMonthlyActivity]
