"""Pydantic schemas for need-request endpoints."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ngoconnect.models.enums import RequestCategory, RequestStatus, UrgencyLevel


class CreateNeedRequest(BaseModel):
    """Request schema for posting a need.

    Category, quantity and text ranges are validated by the ledger so that
    failures carry the service error shape.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, max_length=200)
    category: str
    required_quantity: float
    urgency_level: UrgencyLevel = UrgencyLevel.MEDIUM
    description: str = Field(..., max_length=5000)
    needed_by: date | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class RequestStatusChange(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: RequestStatus
    comment: str | None = Field(None, max_length=2000)


class NeedRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: str
    title: str
    category: RequestCategory
    required_quantity: float
    urgency_level: UrgencyLevel
    description: str
    needed_by: date | None = None
    details: dict[str, Any]
    status: RequestStatus
    created_at: datetime
    updated_at: datetime


class NeedRequestListResponse(BaseModel):
    items: list[NeedRequestResponse]
    total: int
