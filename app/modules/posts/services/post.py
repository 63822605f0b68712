from collections import defaultdict
from typing import Dict, List, Optional, Sequence
import uuid
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.db.session import store_operation
from app.modules.posts.models.post import Post, PostTag, SavedPost
from app.modules.posts.schemas.post import Post as PostSchema, PostCreate, SavedPost as SavedPostSchema
from app.modules.user_management.services.user import check_page

logger = logging.getLogger(__name__)

async def get_tags_for_posts(db: AsyncSession, post_ids: Sequence[str]) -> Dict[str, List[str]]:
    """Tags of several posts in one query, keyed by post id"""
    tags = defaultdict(list)
    if not post_ids:
        return tags
    rows = (
        await db.execute(
            select(PostTag.post_id, PostTag.tag).where(PostTag.post_id.in_(list(post_ids))).order_by(PostTag.tag)
        )
    ).all()
    for post_id, tag in rows:
        tags[post_id].append(tag)
    return tags

def _to_post_schema(post: Post, tags: List[str]) -> PostSchema:
    return PostSchema(
        id=post.id,
        user_id=post.user_id,
        text=post.text,
        image=post.image,
        created_at=post.created_at,
        updated_at=post.updated_at,
        tags=tags,
    )

@store_operation
async def create_post(db: AsyncSession, post_in: PostCreate, user_id: str) -> PostSchema:
    """Create a post and its tags in one transaction"""
    logger.info(f"Creating post for user ID: {user_id}")
    post = Post(id=str(uuid.uuid4()), user_id=user_id, text=post_in.text, image=post_in.image)
    try:
        db.add(post)
        await db.flush()
        db.add_all([PostTag(id=str(uuid.uuid4()), post_id=post.id, tag=tag) for tag in post_in.tags])
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Post author does not exist") from exc

    await db.refresh(post)
    return _to_post_schema(post, sorted(post_in.tags))

@store_operation
async def get_post(db: AsyncSession, post_id: str) -> Optional[PostSchema]:
    """Get post by ID"""
    post = (await db.execute(select(Post).where(Post.id == post_id))).scalar_one_or_none()
    if post is None:
        return None
    tags = await get_tags_for_posts(db, [post.id])
    return _to_post_schema(post, tags[post.id])

@store_operation
async def list_user_posts(db: AsyncSession, user_id: str, skip: int = 0, limit: int = 20) -> List[PostSchema]:
    """Get posts by user ID, newest first"""
    check_page(limit, skip)
    posts = (
        await db.execute(
            select(Post)
            .where(Post.user_id == user_id)
            .order_by(Post.created_at.desc(), Post.id)
            .offset(skip)
            .limit(limit)
        )
    ).scalars().all()
    tags = await get_tags_for_posts(db, [post.id for post in posts])
    return [_to_post_schema(post, tags[post.id]) for post in posts]

@store_operation
async def delete_post(db: AsyncSession, post_id: str) -> None:
    """Delete a post; tags, likes, comment links and saves cascade"""
    result = await db.execute(
        delete(Post).where(Post.id == post_id).execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Post not found")
    await db.commit()

@store_operation
async def save_post(db: AsyncSession, post_id: str, user_id: str) -> SavedPostSchema:
    """Bookmark a post for a user; saving twice returns the existing bookmark"""
    existing = (
        await db.execute(select(SavedPost).where(SavedPost.post_id == post_id, SavedPost.user_id == user_id))
    ).scalar_one_or_none()
    if existing is not None:
        return SavedPostSchema.model_validate(existing)

    saved = SavedPost(id=str(uuid.uuid4()), post_id=post_id, user_id=user_id)
    db.add(saved)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Post or user does not exist") from exc
    return SavedPostSchema.model_validate(saved)

@store_operation
async def unsave_post(db: AsyncSession, post_id: str, user_id: str) -> bool:
    result = await db.execute(
        delete(SavedPost)
        .where(SavedPost.post_id == post_id, SavedPost.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0

@store_operation
async def list_saved_posts(db: AsyncSession, user_id: str, skip: int = 0, limit: int = 20) -> List[PostSchema]:
    """Posts saved by a user, newest post first"""
    check_page(limit, skip)
    posts = (
        await db.execute(
            select(Post)
            .join(SavedPost, SavedPost.post_id == Post.id)
            .where(SavedPost.user_id == user_id)
            .order_by(Post.created_at.desc(), Post.id)
            .offset(skip)
            .limit(limit)
        )
    ).scalars().all()
    tags = await get_tags_for_posts(db, [post.id for post in posts])
    return [_to_post_schema(post, tags[post.id]) for post in posts]
