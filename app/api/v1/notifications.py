"""Notification API routes for the signed-in recipient."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import NotFoundException
from app.schemas.common import APIResponse, PaginationMeta
from app.schemas.notification import NotificationResponse, UnreadCountResponse
from app.services.notification_service import get_notification_service
from app.utils.permissions import require_authenticated
from app.utils.request_context import get_current_user_id

router = APIRouter()


@router.get("")
@require_authenticated()
async def list_notifications(
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> APIResponse:
    """List the current user's notifications, newest first."""
    notification_service = get_notification_service()
    notifications, total = await notification_service.get_notifications(
        db,
        get_current_user_id(),
        unread_only=unread_only,
        page=page,
        page_size=page_size,
    )

    return APIResponse(
        status="success",
        data=[NotificationResponse.model_validate(n) for n in notifications],
        pagination=PaginationMeta.build(page, page_size, total),
    )


@router.get("/unread-count")
@require_authenticated()
async def unread_count(
    db: AsyncSession = Depends(get_db),
) -> APIResponse:
    """Count the current user's unread notifications."""
    notification_service = get_notification_service()
    count = await notification_service.get_unread_count(db, get_current_user_id())

    return APIResponse(status="success", data=UnreadCountResponse(unread_count=count))


@router.patch("/read-all")
@require_authenticated()
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
) -> APIResponse:
    """Mark all of the current user's notifications as read."""
    notification_service = get_notification_service()
    updated = await notification_service.mark_all_as_read(db, get_current_user_id())

    return APIResponse(status="success", data={"updated": updated})


@router.patch("/{notification_id}/read")
@require_authenticated()
async def mark_read(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> APIResponse:
    """Mark one notification as read."""
    notification_service = get_notification_service()
    if not await notification_service.mark_as_read(db, notification_id, get_current_user_id()):
        raise NotFoundException("Notification")

    return APIResponse(status="success", message="Notification marked as read")
