"""
Notification API routes.
"""

from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from controlroom.api.deps import get_current_user, get_session
from controlroom.models.notification import Notification
from controlroom.models.user import User
from controlroom.services.notification_service import NotificationService


router = APIRouter()


# ============== Request/Response Models ==============

class NotificationResponse(BaseModel):
    id: str
    policy_id: str
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    pagination: PaginationResponse
    unread_count: int


class NotificationUpdateRequest(BaseModel):
    """Mark one notification, or all of them, as read."""
    model_config = ConfigDict(populate_by_name=True)

    notification_id: Optional[str] = Field(default=None, alias="notificationId")
    mark_all_as_read: bool = Field(default=False, alias="markAllAsRead")


def _to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        policy_id=notification.policy_id,
        type=notification.type.value,
        title=notification.title,
        message=notification.message,
        is_read=notification.is_read,
        created_at=notification.created_at,
    )


# ============== Notification Routes ==============

@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    page: int = 1,
    limit: int = 20,
    unread: bool = False,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """
    Get the current user's notifications, newest first.
    """
    service = NotificationService(session)
    result = await service.list_for_user(user.id, page=page, limit=limit, unread_only=unread)
    unread_count = await service.unread_count(user.id)

    return NotificationListResponse(
        notifications=[_to_response(n) for n in result.items],
        pagination=PaginationResponse(**result.pagination()),
        unread_count=unread_count,
    )


@router.patch("/notifications")
async def update_notifications(
    body: NotificationUpdateRequest,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """
    Mark notifications as read.
    """
    service = NotificationService(session)

    if body.mark_all_as_read:
        updated = await service.mark_all_as_read(user.id)
        return {"message": "All notifications marked as read", "updated": updated}

    if body.notification_id:
        notification = await service.mark_as_read(body.notification_id, user.id)
        if notification is None:
            raise HTTPException(
                status_code=404,
                detail={"error": "not_found", "message": "Notification not found"}
            )
        return _to_response(notification)

    raise HTTPException(
        status_code=400,
        detail={
            "error": "validation_error",
            "message": "notificationId or markAllAsRead is required",
        }
    )
