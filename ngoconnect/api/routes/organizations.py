"""API routes scoped to one organization."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.api.deps import get_current_principal
from ngoconnect.core.database import get_db
from ngoconnect.core.exceptions import PermissionDenied
from ngoconnect.core.security import Principal
from ngoconnect.models.enums import PrincipalRole
from ngoconnect.schemas.donation import DonationListResponse, DonationResponse
from ngoconnect.schemas.errors import ErrorResponse
from ngoconnect.schemas.fulfillment import FulfillmentReport
from ngoconnect.services.donation_service import DonationService
from ngoconnect.services.fulfillment_service import get_fulfillment_report

router = APIRouter()


def _check_access(principal: Principal, organization_id: str) -> None:
    """Only the organization itself or an administrator may read its figures."""
    if principal.is_admin:
        return
    if principal.role == PrincipalRole.NGO and principal.id == organization_id:
        return
    raise PermissionDenied("Organization data is not accessible to this caller")


@router.get(
    "/{organization_id}/fulfillment",
    response_model=FulfillmentReport,
    summary="Get fulfillment report",
    responses={403: {"model": ErrorResponse}},
)
async def get_fulfillment(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> FulfillmentReport:
    """Per-request fulfillment and organization totals.

    Recomputed from assigned donations on every call.
    """
    _check_access(principal, organization_id)
    return await get_fulfillment_report(db, organization_id)


@router.get(
    "/{organization_id}/donations",
    response_model=DonationListResponse,
    summary="List donations assigned to organization",
    responses={403: {"model": ErrorResponse}},
)
async def list_organization_donations(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> DonationListResponse:
    _check_access(principal, organization_id)
    service = DonationService(db)
    donations = await service.list_organization_donations(organization_id)
    return DonationListResponse(
        items=[DonationResponse.model_validate(d) for d in donations],
        total=len(donations),
    )
