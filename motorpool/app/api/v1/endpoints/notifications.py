"""
In-app Notification API Endpoints.

Each user reads only their own booking notices. Rows are written when
the notification provider is "in_app".
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.dependencies import get_current_user
from motorpool.app.core.exceptions import NotFoundError
from motorpool.app.db.session import get_db
from motorpool.app.schemas.notifications import NotificationResponse, NotificationListResponse
from motorpool.app.services.inbox import InboxService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List current user's notifications."""
    notifications = await InboxService.list_for_user(db, current_user["user_id"], unread_only, limit)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread=await InboxService.unread_count(db, current_user["user_id"]),
    )


@router.patch("/read-all")
async def mark_all_notifications_read(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark all notifications as read."""
    count = await InboxService.mark_all_read(db, current_user["user_id"])
    await db.commit()
    return {"status": "success", "count": count}


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int = Path(..., description="Notification ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a specific notification as read."""
    if not await InboxService.mark_read(db, notification_id, current_user["user_id"]):
        raise NotFoundError("Notification", notification_id)
    
    await db.commit()
    return {"status": "success"}
