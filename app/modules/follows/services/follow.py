from collections import defaultdict
from typing import List
import logging

from sqlalchemy import and_, delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationFailureError
from app.db.session import store_operation
from app.modules.follows.models.follow import Follow
from app.modules.follows.schemas.follow import FollowEdge, FollowListEntry
from app.modules.notifications.services.notification_events import FollowEvent, NotificationDispatcher
from app.modules.user_management.models.user import Profile, User
from app.modules.user_management.schemas.user import UserWithProfile
from app.modules.user_management.services.user import check_page, find_user, to_user_with_profile

logger = logging.getLogger(__name__)

def _edge_filter(follower_id: str, followed_id: str):
    return and_(Follow.follower_id == follower_id, Follow.followed_id == followed_id)

@store_operation
async def follow_edge_exists(db: AsyncSession, follower_id: str, followed_id: str) -> bool:
    """Check whether follower_id follows followed_id"""
    stmt = select(Follow.follower_id).where(_edge_filter(follower_id, followed_id)).limit(1)
    return (await db.execute(stmt)).first() is not None

@store_operation
async def create_follow_edge(db: AsyncSession, follower_id: str, followed_id: str) -> FollowEdge:
    """
    Insert a follow edge.

    The composite primary key is the uniqueness guard: a second insert of the
    same pair, or a pair naming a missing user, raises ConflictError.
    """
    if follower_id == followed_id:
        raise ValidationFailureError("Users cannot follow themselves")

    try:
        await db.execute(insert(Follow).values(follower_id=follower_id, followed_id=followed_id))
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.info(f"Follow edge {follower_id} -> {followed_id} rejected: {exc.orig}")
        raise ConflictError("Follow edge already exists or user does not exist") from exc

    edge = (await db.execute(select(Follow).where(_edge_filter(follower_id, followed_id)))).scalar_one()
    return FollowEdge.model_validate(edge)

@store_operation
async def delete_follow_edge(db: AsyncSession, follower_id: str, followed_id: str) -> bool:
    """Delete a follow edge; returns False (not an error) when there was none"""
    result = await db.execute(
        delete(Follow)
        .where(_edge_filter(follower_id, followed_id))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0

async def _list_edges(db: AsyncSession, anchor, other, user_id: str, limit: int, offset: int) -> List[FollowListEntry]:
    """Edges anchored on user_id, joined to the user at the other end, newest edge first"""
    check_page(limit, offset)
    stmt = (
        select(Follow, User, Profile)
        .join(User, User.id == other)
        .outerjoin(Profile, Profile.user_id == User.id)
        .where(anchor == user_id)
        .order_by(Follow.created_at.desc(), other)
        .limit(limit)
        .offset(offset)
    )
    rows = (await db.execute(stmt)).all()
    return [
        FollowListEntry(user=to_user_with_profile(user, profile), edge=FollowEdge.model_validate(edge))
        for edge, user, profile in rows
    ]

@store_operation
async def list_followings(db: AsyncSession, user_id: str, limit: int = 20, offset: int = 0) -> List[FollowListEntry]:
    """Users that user_id follows"""
    return await _list_edges(db, Follow.follower_id, Follow.followed_id, user_id, limit, offset)

@store_operation
async def list_followers(db: AsyncSession, user_id: str, limit: int = 20, offset: int = 0) -> List[FollowListEntry]:
    """Users that follow user_id"""
    return await _list_edges(db, Follow.followed_id, Follow.follower_id, user_id, limit, offset)

@store_operation
async def suggest_connections(
    db: AsyncSession, user_id: str, limit: int = 20, distinct: bool = False
) -> List[UserWithProfile]:
    """
    Friends-of-friends: the followees of up to `limit` of the user's followees.

    The user is never suggested. By default a user reachable through several
    followees appears once per path, and users already followed are kept.
    With distinct=True each user appears once and already-followed users are
    dropped.
    """
    check_page(limit)

    # Phase 1: direct followees, newest edge first
    followee_ids = (
        await db.execute(
            select(Follow.followed_id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at.desc(), Follow.followed_id)
            .limit(limit)
        )
    ).scalars().all()
    if not followee_ids:
        return []

    # Phase 2: their followees
    stmt = (
        select(Follow.follower_id, User, Profile)
        .join(User, User.id == Follow.followed_id)
        .outerjoin(Profile, Profile.user_id == User.id)
        .where(Follow.follower_id.in_(followee_ids), Follow.followed_id != user_id)
        .order_by(Follow.created_at.desc(), Follow.followed_id)
    )
    rows = (await db.execute(stmt)).all()

    reached = defaultdict(list)
    for via_id, user, profile in rows:
        reached[via_id].append(to_user_with_profile(user, profile))
    suggestions = [user for via_id in followee_ids for user in reached[via_id]]

    if not distinct:
        return suggestions

    already_following = set(
        (await db.execute(select(Follow.followed_id).where(Follow.follower_id == user_id))).scalars().all()
    )
    seen = set()
    unique = []
    for user in suggestions:
        if user.id in seen or user.id in already_following:
            continue
        seen.add(user.id)
        unique.append(user)
    return unique

async def follow_user(
    db: AsyncSession, dispatcher: NotificationDispatcher, follower_id: str, followed_id: str
) -> FollowEdge:
    """
    Follow workflow used by the API: validate, create the edge, then publish
    a follow notification. The notification is fire-and-forget; the edge is
    already committed when the event is published.
    """
    if follower_id == followed_id:
        raise ValidationFailureError("Users cannot follow themselves")
    if await find_user(db, user_id=follower_id) is None:
        raise NotFoundError("User not found")
    if await find_user(db, user_id=followed_id) is None:
        raise NotFoundError("User to follow not found")
    if await follow_edge_exists(db, follower_id, followed_id):
        raise ConflictError("Already following this user")

    edge = await create_follow_edge(db, follower_id, followed_id)
    dispatcher.publish(FollowEvent(from_id=follower_id, to_id=followed_id))
    logger.info(f"User {follower_id} followed {followed_id}")
    return edge

async def unfollow_user(db: AsyncSession, follower_id: str, followed_id: str) -> bool:
    if follower_id == followed_id:
        raise ValidationFailureError("Users cannot unfollow themselves")
    return await delete_follow_edge(db, follower_id, followed_id)
