from typing import List
import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import store_operation, utcnow
from app.modules.notifications.models.notification import Notification
from app.modules.notifications.schemas.notification import Notification as NotificationSchema, NotificationType
from app.modules.user_management.services.user import check_page

@store_operation
async def insert_notification(db: AsyncSession, from_id: str, to_id: str, type: NotificationType) -> NotificationSchema:
    """Create a new unread notification and commit it"""
    notification = Notification(
        id=str(uuid.uuid4()),
        from_id=from_id,
        to_id=to_id,
        type=type,
        read=False,
    )

    db.add(notification)
    await db.commit()
    await db.refresh(notification)

    return NotificationSchema.model_validate(notification)

@store_operation
async def get_user_notifications(
    db: AsyncSession, user_id: str, skip: int = 0, limit: int = 50, unread_only: bool = False
) -> List[NotificationSchema]:
    """Get notifications addressed to a user, newest first"""
    check_page(limit, skip)
    stmt = select(Notification).where(Notification.to_id == user_id)

    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))

    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id).offset(skip).limit(limit)
    notifications = (await db.execute(stmt)).scalars().all()
    return [NotificationSchema.model_validate(n) for n in notifications]

@store_operation
async def mark_all_as_read(db: AsyncSession, user_id: str) -> int:
    """Mark all notifications for a user as read in a single UPDATE"""
    result = await db.execute(
        update(Notification)
        .where(Notification.to_id == user_id, Notification.read.is_(False))
        .values(read=True, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    return result.rowcount

@store_operation
async def delete_all_notifications(db: AsyncSession, user_id: str) -> int:
    """Delete all notifications for a user"""
    result = await db.execute(
        delete(Notification)
        .where(Notification.to_id == user_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    return result.rowcount
