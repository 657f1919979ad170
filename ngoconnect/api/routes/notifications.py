"""API routes for the in-app notification inbox."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.api.deps import get_current_principal
from ngoconnect.core.database import get_db
from ngoconnect.core.security import Principal
from ngoconnect.schemas.errors import ErrorResponse
from ngoconnect.schemas.notification import NotificationListResponse, NotificationResponse
from ngoconnect.services.notification_service import NotificationService

router = APIRouter()


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List own notifications",
)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> NotificationListResponse:
    service = NotificationService(db)
    items, total, unread = await service.list_for_recipient(
        principal.id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread=unread,
    )


@router.post(
    "/read-all",
    summary="Mark all notifications read",
)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> dict:
    service = NotificationService(db)
    updated = await service.mark_all_read(principal.id)
    await db.commit()
    return {"updated": updated}


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark notification read",
    responses={404: {"model": ErrorResponse}},
)
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> NotificationResponse:
    service = NotificationService(db)
    notification = await service.mark_read(principal.id, notification_id)
    response = NotificationResponse.model_validate(notification)
    await db.commit()
    return response
