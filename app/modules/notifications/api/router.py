from typing import Any, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.deps import get_dispatcher
from app.modules.notifications.schemas.notification import Notification as NotificationSchema
from app.modules.notifications.services.notification import get_user_notifications
from app.modules.notifications.services.notification_events import (
    ClearEvent,
    NotificationDispatcher,
    ReadEvent,
)

router = APIRouter()

@router.get("/{user_id}/notifications", response_model=List[NotificationSchema])
async def read_notifications(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    unread_only: bool = False,
) -> Any:
    """Get user's notifications with pagination and filter options"""
    return await get_user_notifications(db, user_id, skip, limit, unread_only)

@router.put("/{user_id}/notifications/mark-all-read", response_model=dict, status_code=status.HTTP_202_ACCEPTED)
async def mark_all_notifications_as_read(
    user_id: str,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> Any:
    """Queue marking all of the user's notifications as read"""
    dispatcher.publish(ReadEvent(user_id=user_id))
    return {"message": "Marking notifications as read", "user_id": user_id}

@router.delete("/{user_id}/notifications", response_model=dict, status_code=status.HTTP_202_ACCEPTED)
async def delete_all_user_notifications(
    user_id: str,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> Any:
    """Queue deletion of all notifications for the user"""
    dispatcher.publish(ClearEvent(user_id=user_id))
    return {"message": "Deleting notifications", "user_id": user_id}
