"""Pydantic schemas for fulfillment figures."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from ngoconnect.models.enums import RequestCategory, RequestStatus


class RequestFulfillment(BaseModel):
    """Fulfillment of one need-request, recomputed from assigned donations."""

    request_id: UUID
    category: RequestCategory
    status: RequestStatus
    required_quantity: float
    received_quantity: float
    fulfilled_percent: int = Field(..., ge=0, le=100)


class CategoryTotal(BaseModel):
    category: RequestCategory
    donation_count: int
    total_quantity: float


class OrganizationTotals(BaseModel):
    """Organization-level aggregates over every assigned donation."""

    donation_count: int
    total_quantity: float
    unearmarked_quantity: float
    excluded_donation_count: int
    by_category: list[CategoryTotal]
    requests_by_status: dict[str, int]


class UrgentRequest(BaseModel):
    """Open high-urgency request, soonest deadline first."""

    request_id: UUID
    title: str
    category: RequestCategory
    status: RequestStatus
    needed_by: date | None = None
    required_quantity: float
    received_quantity: float
    fulfilled_percent: int = Field(..., ge=0, le=100)


class MonthlyActivity(BaseModel):
    label: str = Field(..., description="Calendar month in the configured zone, YYYY-MM")
    requests_created: int
    donations_received: int


class FulfillmentReport(BaseModel):
    organization_id: str
    requests: list[RequestFulfillment]
    totals: OrganizationTotals
    urgent_requests: list[UrgentRequest]
    activity: list[MonthlyActivity]
