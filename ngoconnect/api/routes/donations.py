"""API routes for donations."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.api.deps import get_current_principal, require_admin, require_donor
from ngoconnect.core.database import get_db
from ngoconnect.core.security import Principal
from ngoconnect.models.enums import DonationStatus
from ngoconnect.schemas.donation import (
    AssignDonationRequest,
    DonationListResponse,
    DonationResponse,
    DonorSummary,
    SubmitDonationRequest,
)
from ngoconnect.schemas.errors import ErrorResponse
from ngoconnect.services.donation_service import DonationService

router = APIRouter()


@router.post(
    "",
    response_model=DonationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit donation",
    responses={422: {"model": ErrorResponse}},
)
async def submit_donation(
    request: SubmitDonationRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_donor()),
) -> DonationResponse:
    service = DonationService(db)
    donation = await service.submit_donation(
        donor_id=principal.id,
        category=request.category,
        quantity=request.quantity,
        unit=request.unit,
        notes=request.notes,
    )
    response = DonationResponse.model_validate(donation)
    await db.commit()
    return response


@router.get(
    "/mine",
    response_model=DonationListResponse,
    summary="List own donations",
)
async def list_own_donations(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_donor()),
) -> DonationListResponse:
    service = DonationService(db)
    donations = await service.list_donor_donations(principal.id)
    return DonationListResponse(
        items=[DonationResponse.model_validate(d) for d in donations],
        total=len(donations),
    )


@router.get(
    "/mine/summary",
    response_model=DonorSummary,
    summary="Donor dashboard",
)
async def get_own_summary(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_donor()),
) -> DonorSummary:
    """Totals, organizations reached, recent donations and a 12-month series."""
    return await DonationService(db).donor_summary(principal.id)


@router.get(
    "",
    response_model=DonationListResponse,
    summary="List donations",
)
async def list_donations(
    status: DonationStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin()),
) -> DonationListResponse:
    """List all donations, optionally only pending or assigned ones (admin only)."""
    service = DonationService(db)
    donations, total = await service.list_all(status_filter=status, limit=limit, offset=offset)
    return DonationListResponse(
        items=[DonationResponse.model_validate(d) for d in donations],
        total=total,
    )


@router.get(
    "/{donation_id}",
    response_model=DonationResponse,
    summary="Get donation",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_donation(
    donation_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> DonationResponse:
    """Get a donation.

    Visible to administrators, the donor, and the organization it was assigned to.
    """
    donation = await DonationService(db).get_donation_for(principal, donation_id)
    return DonationResponse.model_validate(donation)


@router.post(
    "/{donation_id}/assign",
    response_model=DonationResponse,
    summary="Assign donation",
    responses={
        403: {"model": ErrorResponse, "description": "Organization is not verified"},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Already assigned or request mismatch"},
    },
)
async def assign_donation(
    donation_id: UUID,
    request: AssignDonationRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin()),
) -> DonationResponse:
    """Assign a donation to an organization and optionally one of its requests.

    A donation is assigned at most once; a second attempt returns 409.
    """
    service = DonationService(db)
    donation = await service.assign_donation(
        donation_id,
        organization_id=request.organization_id,
        assigned_by=principal.id,
        request_id=request.request_id,
    )
    response = DonationResponse.model_validate(donation)
    await db.commit()
    await service.notifications.dispatch()
    return response
