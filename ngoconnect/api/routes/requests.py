"""API routes for need-requests."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.api.deps import get_current_principal, require_admin, require_ngo
from ngoconnect.core.database import get_db
from ngoconnect.core.exceptions import PermissionDenied
from ngoconnect.core.security import Principal
from ngoconnect.models.enums import (
    PrincipalRole,
    RequestCategory,
    RequestStatus,
    RequestWindow,
    UrgencyLevel,
)
from ngoconnect.schemas.errors import ErrorResponse
from ngoconnect.schemas.need_request import (
    CreateNeedRequest,
    NeedRequestListResponse,
    NeedRequestResponse,
    RequestStatusChange,
)
from ngoconnect.services.need_request_service import NeedRequestService

router = APIRouter()


@router.post(
    "",
    response_model=NeedRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create need-request",
    responses={
        403: {"model": ErrorResponse, "description": "Organization is not verified"},
        422: {"model": ErrorResponse, "description": "Invalid input"},
    },
)
async def create_request(
    request: CreateNeedRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_ngo()),
) -> NeedRequestResponse:
    """Create a need-request for the caller's verified organization."""
    service = NeedRequestService(db)
    need_request = await service.create_request(
        organization_id=principal.id,
        category=request.category,
        required_quantity=request.required_quantity,
        urgency_level=request.urgency_level,
        description=request.description,
        needed_by=request.needed_by,
        title=request.title,
        details=request.details,
    )
    response = NeedRequestResponse.model_validate(need_request)
    await db.commit()
    return response


@router.get(
    "",
    response_model=NeedRequestListResponse,
    summary="List need-requests",
)
async def list_requests(
    window: RequestWindow | None = Query(None),
    status: RequestStatus | None = Query(None),
    category: RequestCategory | None = Query(None),
    urgency_level: UrgencyLevel | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> NeedRequestListResponse:
    """List requests.

    Organizations see their own requests, optionally limited to a creation
    window. Administrators see every organization's requests.
    """
    service = NeedRequestService(db)
    if principal.role == PrincipalRole.ADMIN:
        items, total = await service.list_all(
            status_filter=status,
            category=category,
            urgency_level=urgency_level,
            limit=limit,
            offset=offset,
        )
    elif principal.role == PrincipalRole.NGO:
        items = await service.list_requests(principal.id, window=window, status_filter=status)
        total = len(items)
    else:
        raise PermissionDenied("Only organizations and administrators can list requests")

    return NeedRequestListResponse(
        items=[NeedRequestResponse.model_validate(r) for r in items],
        total=total,
    )


@router.get(
    "/{request_id}",
    response_model=NeedRequestResponse,
    summary="Get need-request",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> NeedRequestResponse:
    service = NeedRequestService(db)
    if principal.is_admin:
        need_request = await service.get_by_id(request_id)
    else:
        need_request = await service.get_request(principal.id, request_id)
    return NeedRequestResponse.model_validate(need_request)


@router.post(
    "/{request_id}/status",
    response_model=NeedRequestResponse,
    summary="Change need-request status",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def change_request_status(
    request_id: UUID,
    request: RequestStatusChange,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin()),
) -> NeedRequestResponse:
    """Approve, reject or mark a request fulfilled (admin only)."""
    service = NeedRequestService(db)
    need_request = await service.change_status(
        request_id,
        request.status,
        actor_id=principal.id,
        comment=request.comment,
    )
    response = NeedRequestResponse.model_validate(need_request)
    await db.commit()
    await service.notifications.dispatch()
    return response
