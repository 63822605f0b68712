from collections import defaultdict
from typing import Dict, List, Sequence

from sqlalchemy import and_, delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.db.session import store_operation
from app.modules.posts.likes.models.like import PostLike
from app.modules.posts.schemas.post import Like

def _like_filter(post_id: str, user_id: str):
    return and_(PostLike.post_id == post_id, PostLike.user_id == user_id)

@store_operation
async def like_post(db: AsyncSession, post_id: str, user_id: str) -> Like:
    """Like a post; a second like by the same user is a conflict"""
    try:
        await db.execute(insert(PostLike).values(post_id=post_id, user_id=user_id))
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Post already liked, or post or user does not exist") from exc

    like = (await db.execute(select(PostLike).where(_like_filter(post_id, user_id)))).scalar_one()
    return Like.model_validate(like)

@store_operation
async def unlike_post(db: AsyncSession, post_id: str, user_id: str) -> bool:
    result = await db.execute(
        delete(PostLike).where(_like_filter(post_id, user_id)).execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0

@store_operation
async def get_likes_by_post(db: AsyncSession, post_id: str) -> List[Like]:
    likes = (
        await db.execute(select(PostLike).where(PostLike.post_id == post_id).order_by(PostLike.created_at.desc()))
    ).scalars().all()
    return [Like.model_validate(like) for like in likes]

@store_operation
async def count_likes(db: AsyncSession, post_id: str) -> int:
    return (
        await db.execute(select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id))
    ).scalar_one()

async def get_likes_for_posts(db: AsyncSession, post_ids: Sequence[str]) -> Dict[str, List[Like]]:
    """Likes of several posts in one query, keyed by post id"""
    likes = defaultdict(list)
    if not post_ids:
        return likes
    rows = (
        await db.execute(
            select(PostLike).where(PostLike.post_id.in_(list(post_ids))).order_by(PostLike.created_at.desc())
        )
    ).scalars().all()
    for like in rows:
        likes[like.post_id].append(Like.model_validate(like))
    return likes
