from typing import List, Optional, Sequence
import uuid
import logging

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationFailureError
from app.core.security import get_password_hash
from app.db.session import store_operation
from app.modules.follows.models.follow import Follow
from app.modules.user_management.models.user import Profile, User
from app.modules.user_management.schemas.user import (
    AccountUpdate,
    DiscoverUser,
    FollowerRef,
    ProfileInfo,
    ProfileUpdate,
    UserCreate,
    UserWithProfile,
)

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"

def check_page(limit: int, offset: int = 0) -> None:
    """Reject pagination arguments before they reach the store"""
    if limit is None or limit < 1:
        raise ValidationFailureError("limit must be a positive integer")
    if offset is None or offset < 0:
        raise ValidationFailureError("offset must not be negative")

def user_with_profile_query():
    """SELECT users LEFT JOIN profiles, the base of every UserWithProfile read"""
    return select(User, Profile).outerjoin(Profile, Profile.user_id == User.id)

def to_user_with_profile(user: User, profile: Optional[Profile]) -> UserWithProfile:
    """Create a UserWithProfile shape from a user row and its optional profile row"""
    return UserWithProfile(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        created_at=user.created_at,
        updated_at=user.updated_at,
        profile=ProfileInfo.model_validate(profile) if profile is not None else None,
    )

def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the input is matched as literal text"""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )

@store_operation
async def find_user(
    db: AsyncSession,
    email: Optional[str] = None,
    username: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Optional[UserWithProfile]:
    """
    First user matching the id, or else the username or email.

    Username comparison is case-insensitive. Returns None when nothing matches.
    """
    if user_id is not None:
        condition = User.id == user_id
    else:
        criteria = []
        if username is not None:
            criteria.append(func.lower(User.username) == username.lower())
        if email is not None:
            criteria.append(func.lower(User.email) == email.lower())
        if not criteria:
            raise ValidationFailureError("One of email, username or user_id is required")
        condition = or_(*criteria)

    row = (await db.execute(user_with_profile_query().where(condition).limit(1))).first()
    if row is None:
        return None
    return to_user_with_profile(*row)

@store_operation
async def search_users_by_username(
    db: AsyncSession, pattern: str, offset: int = 0, limit: int = 20
) -> List[UserWithProfile]:
    """Case-insensitive substring search on username, ordered by username descending"""
    if pattern is None or not pattern.strip():
        raise ValidationFailureError("Search pattern must not be empty")
    check_page(limit, offset)

    like_pattern = f"%{_escape_like(pattern)}%"
    stmt = (
        user_with_profile_query()
        .where(User.username.ilike(like_pattern, escape=LIKE_ESCAPE))
        .order_by(User.username.desc())
        .offset(offset)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()
    return [to_user_with_profile(user, profile) for user, profile in rows]

@store_operation
async def register_user(db: AsyncSession, user_in: UserCreate) -> UserWithProfile:
    """
    Create a user and its profile in one transaction.

    If either insert fails nothing is kept, so a user never exists
    without its profile.
    """
    user = User(
        id=str(uuid.uuid4()),
        email=str(user_in.email).lower(),
        username=user_in.username,
        hashed_password=get_password_hash(user_in.password),
        role="user",
    )
    profile = Profile(
        id=str(uuid.uuid4()),
        user_id=user.id,
        full_name=user_in.full_name,
        bio=user_in.bio,
        profile_pic=user_in.profile_pic,
        gender=user_in.gender,
        is_banned=False,
    )

    try:
        db.add(user)
        # users row must exist before the profile FK is checked
        await db.flush()
        db.add(profile)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning(f"Registration rejected for {user_in.username!r}: {exc.orig}")
        raise ConflictError("Username, email or profile already exists") from exc
    except Exception:
        await db.rollback()
        raise

    await db.refresh(user)
    await db.refresh(profile)
    logger.info(f"Registered user {user.id}")
    return to_user_with_profile(user, profile)

@store_operation
async def get_profile(db: AsyncSession, user_id: str) -> Optional[ProfileInfo]:
    """Get the profile of a user, None if missing"""
    profile = (
        await db.execute(select(Profile).where(Profile.user_id == user_id))
    ).scalar_one_or_none()
    return ProfileInfo.model_validate(profile) if profile is not None else None

@store_operation
async def update_profile(db: AsyncSession, user_id: str, profile_in: ProfileUpdate) -> ProfileInfo:
    """Update profile fields that were explicitly set"""
    profile = (
        await db.execute(select(Profile).where(Profile.user_id == user_id))
    ).scalar_one_or_none()
    if profile is None:
        raise NotFoundError("Profile not found")

    for field, value in profile_in.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)

    await db.commit()
    await db.refresh(profile)
    return ProfileInfo.model_validate(profile)

@store_operation
async def update_account(db: AsyncSession, user_id: str, account_in: AccountUpdate) -> UserWithProfile:
    """Change the password, or else the email and username"""
    if account_in.password:
        values = {"hashed_password": get_password_hash(account_in.password)}
    else:
        values = account_in.model_dump(exclude_unset=True, exclude={"password"}, exclude_none=True)
        if "email" in values:
            values["email"] = str(values["email"]).lower()
        if not values:
            raise ValidationFailureError("Nothing to update")

    try:
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFoundError("User not found")
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Username or email already in use") from exc

    updated = await find_user(db, user_id=user_id)
    return updated

@store_operation
async def find_users_by_ids(
    db: AsyncSession, user_ids: Sequence[str], limit: Optional[int] = None
) -> List[UserWithProfile]:
    """Get users by id; an empty id list returns no rows without a query"""
    if not user_ids:
        return []
    stmt = user_with_profile_query().where(User.id.in_(list(user_ids)))
    if limit is not None:
        stmt = stmt.limit(limit)
    rows = (await db.execute(stmt)).all()
    return [to_user_with_profile(user, profile) for user, profile in rows]

@store_operation
async def list_user_ids(db: AsyncSession) -> List[str]:
    return list((await db.execute(select(User.id))).scalars().all())

@store_operation
async def list_users_excluding(db: AsyncSession, current_user_id: str, limit: int = 20) -> List[DiscoverUser]:
    """
    Discover listing: every user except the caller, with profile and
    follower edges, flagged when the caller already follows them.
    """
    check_page(limit)
    stmt = (
        user_with_profile_query()
        .where(User.id != current_user_id)
        .order_by(User.created_at.desc(), User.id)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()
    if not rows:
        return []

    user_ids = [user.id for user, _ in rows]
    edges = (
        await db.execute(
            select(Follow)
            .where(Follow.followed_id.in_(user_ids))
            .order_by(Follow.created_at.desc())
        )
    ).scalars().all()

    followers_by_user = {user_id: [] for user_id in user_ids}
    for edge in edges:
        followers_by_user[edge.followed_id].append(FollowerRef.model_validate(edge))

    result = []
    for user, profile in rows:
        followers = followers_by_user[user.id]
        result.append(DiscoverUser(
            **to_user_with_profile(user, profile).model_dump(),
            followers=followers,
            followed_by_current_user=any(f.follower_id == current_user_id for f in followers),
        ))
    return result

@store_operation
async def count_users(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(User))).scalar_one()

@store_operation
async def delete_user(db: AsyncSession, user_id: str) -> None:
    """
    Delete a user. Profile, follow edges, posts, comments, replies, likes,
    saved posts and notifications go with it through ON DELETE CASCADE.
    """
    result = await db.execute(
        delete(User).where(User.id == user_id).execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("User not found")
    await db.commit()
    logger.info(f"Deleted user {user_id} and dependent rows")
