"""API routes for organization registration and verification."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.api.deps import require_admin, require_ngo
from ngoconnect.core.database import get_db
from ngoconnect.core.security import Principal
from ngoconnect.models.enums import RegistrationStatus
from ngoconnect.schemas.errors import ErrorResponse
from ngoconnect.schemas.registration import (
    RegistrationListResponse,
    RegistrationResponse,
    RegistrationStatusResponse,
    ReviewRegistrationRequest,
    SubmitRegistrationRequest,
)
from ngoconnect.services.registration_service import RegistrationService

router = APIRouter()


@router.post(
    "",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit registration",
    responses={
        409: {"model": ErrorResponse, "description": "Registration already pending or approved"},
        422: {"model": ErrorResponse, "description": "Missing field or document"},
    },
)
async def submit_registration(
    request: SubmitRegistrationRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_ngo()),
) -> RegistrationResponse:
    """Submit the caller's organization for verification.

    Allowed when the organization has never registered or was rejected.
    """
    service = RegistrationService(db)
    registration = await service.submit(principal.id, request)
    response = RegistrationResponse.model_validate(registration)
    await db.commit()
    return response


@router.get(
    "/me",
    response_model=RegistrationStatusResponse,
    summary="Get own verification status",
)
async def get_own_status(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_ngo()),
) -> RegistrationStatusResponse:
    service = RegistrationService(db)
    registration = await service.get_active(principal.id)
    if registration is None:
        return RegistrationStatusResponse(
            organization_id=principal.id,
            status=RegistrationStatus.UNREGISTERED,
        )
    return RegistrationStatusResponse(
        organization_id=principal.id,
        status=registration.status,
        registration=RegistrationResponse.model_validate(registration),
    )


@router.get(
    "/me/history",
    response_model=RegistrationListResponse,
    summary="List own submissions",
)
async def get_own_history(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_ngo()),
) -> RegistrationListResponse:
    service = RegistrationService(db)
    records = await service.history(principal.id)
    return RegistrationListResponse(
        items=[RegistrationResponse.model_validate(r) for r in records],
        total=len(records),
    )


@router.get(
    "",
    response_model=RegistrationListResponse,
    summary="List registrations",
)
async def list_registrations(
    status: RegistrationStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin()),
) -> RegistrationListResponse:
    """List current registrations, optionally filtered by status (admin only)."""
    service = RegistrationService(db)
    records, total = await service.list(status_filter=status, limit=limit, offset=offset)
    return RegistrationListResponse(
        items=[RegistrationResponse.model_validate(r) for r in records],
        total=total,
    )


@router.get(
    "/{registration_id}",
    response_model=RegistrationResponse,
    summary="Get registration",
    responses={404: {"model": ErrorResponse}},
)
async def get_registration(
    registration_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin()),
) -> RegistrationResponse:
    service = RegistrationService(db)
    registration = await service.get_by_id(registration_id)
    return RegistrationResponse.model_validate(registration)


@router.post(
    "/{registration_id}/review",
    response_model=RegistrationResponse,
    summary="Approve or reject registration",
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Not pending or superseded"},
    },
)
async def review_registration(
    registration_id: UUID,
    request: ReviewRegistrationRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin()),
) -> RegistrationResponse:
    """Apply an administrator's decision to a pending registration.

    The organization is notified of the outcome.
    """
    service = RegistrationService(db)
    registration = await service.review(
        registration_id,
        request.status,
        reviewer_id=principal.id,
        rejection_reason=request.rejection_reason,
    )
    response = RegistrationResponse.model_validate(registration)
    await db.commit()
    await service.notifications.dispatch()
    return response
