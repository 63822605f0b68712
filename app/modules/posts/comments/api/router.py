from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.db.session import get_db
from app.modules.posts.services.post import get_post
from app.modules.posts.comments.schemas.comment import (
    Comment as CommentSchema, CommentCreate, CommentWithReplies, Reply, ReplyCreate
)
from app.modules.posts.comments.services.comment import add_comment, add_reply, list_post_comments

router = APIRouter()
logger = logging.getLogger("app")

async def _validate_post(db: AsyncSession, post_id: str) -> None:
    """Validate post exists and return None or raise HTTPException"""
    post = await get_post(db, post_id)
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

@router.get("", response_model=List[CommentWithReplies])
async def read_comments(
    post_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
) -> Any:
    """Get the comments of a post, newest first, each with its replies"""
    await _validate_post(db, post_id)
    return await list_post_comments(db, post_id, skip, limit)

@router.post("/by/{author_id}", response_model=CommentSchema, status_code=status.HTTP_201_CREATED)
async def create_comment(
    *,
    db: AsyncSession = Depends(get_db),
    post_id: str = Path(...),
    author_id: str,
    comment_in: CommentCreate,
) -> Any:
    await _validate_post(db, post_id)
    comment = await add_comment(db, post_id, author_id, comment_in)
    logger.info(f"User {author_id} commented on post {post_id}")
    return comment

@router.post("/{comment_id}/replies/by/{author_id}", response_model=Reply, status_code=status.HTTP_201_CREATED)
async def create_reply(
    *,
    db: AsyncSession = Depends(get_db),
    post_id: str = Path(...),
    comment_id: str,
    author_id: str,
    reply_in: ReplyCreate,
) -> Any:
    """Reply to a comment on the post"""
    await _validate_post(db, post_id)
    return await add_reply(db, comment_id, author_id, reply_in)
