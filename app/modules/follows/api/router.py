from typing import Any, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db, with_deadline
from app.deps import get_dispatcher
from app.modules.follows.schemas.follow import FollowEdge, FollowListEntry, FollowStatus
from app.modules.follows.services.follow import (
    follow_edge_exists,
    follow_user,
    list_followers,
    list_followings,
    suggest_connections,
    unfollow_user,
)
from app.modules.notifications.services.notification_events import NotificationDispatcher
from app.modules.user_management.schemas.user import UserWithProfile

router = APIRouter()

@router.post("/{user_id}/followings/{target_id}", response_model=FollowEdge, status_code=status.HTTP_201_CREATED)
async def follow(
    *,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    user_id: str,
    target_id: str,
) -> Any:
    """Follow target_id; the followed user is notified in the background"""
    return await follow_user(db, dispatcher, user_id, target_id)

@router.delete("/{user_id}/followings/{target_id}", response_model=FollowStatus)
async def unfollow(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: str,
    target_id: str,
) -> Any:
    """Stop following target_id; unfollowing a user not followed is not an error"""
    await unfollow_user(db, user_id, target_id)
    return FollowStatus(following=False)

@router.get("/{user_id}/followings/{target_id}", response_model=FollowStatus)
async def read_follow_status(user_id: str, target_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    return FollowStatus(following=await follow_edge_exists(db, user_id, target_id))

@router.get("/{user_id}/followings", response_model=List[FollowListEntry])
async def read_followings(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    return await with_deadline(list_followings(db, user_id, limit, skip), settings.QUERY_TIMEOUT_SECONDS)

@router.get("/{user_id}/followers", response_model=List[FollowListEntry])
async def read_followers(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    return await with_deadline(list_followers(db, user_id, limit, skip), settings.QUERY_TIMEOUT_SECONDS)

@router.get("/{user_id}/suggestions", response_model=List[UserWithProfile])
async def read_suggestions(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
    distinct: bool = Query(False, description="Drop repeats and users already followed"),
) -> Any:
    """People followed by the people user_id follows"""
    return await with_deadline(
        suggest_connections(db, user_id, limit=limit, distinct=distinct),
        settings.QUERY_TIMEOUT_SECONDS,
    )
