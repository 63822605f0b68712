from collections import defaultdict
from typing import Dict, List, Sequence
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.db.session import store_operation
from app.modules.posts.comments.models.comment import Comment, PostComment, Reply
from app.modules.posts.comments.schemas.comment import (
    Comment as CommentSchema,
    CommentCreate,
    CommentWithReplies,
    Reply as ReplySchema,
    ReplyCreate,
)
from app.modules.user_management.services.user import check_page

def _to_comment_schema(comment: Comment, post_id: str) -> CommentSchema:
    return CommentSchema(
        id=comment.id,
        post_id=post_id,
        author_id=comment.author_id,
        text=comment.text,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )

async def get_comments_for_posts(db: AsyncSession, post_ids: Sequence[str]) -> Dict[str, List[CommentSchema]]:
    """Comments linked to several posts in one query, oldest first per post"""
    comments = defaultdict(list)
    if not post_ids:
        return comments
    rows = (
        await db.execute(
            select(PostComment.post_id, Comment)
            .join(Comment, Comment.id == PostComment.comment_id)
            .where(PostComment.post_id.in_(list(post_ids)))
            .order_by(Comment.created_at.asc(), Comment.id)
        )
    ).all()
    for post_id, comment in rows:
        comments[post_id].append(_to_comment_schema(comment, post_id))
    return comments

@store_operation
async def add_comment(db: AsyncSession, post_id: str, author_id: str, comment_in: CommentCreate) -> CommentSchema:
    """Create a comment and link it to the post in one transaction"""
    comment = Comment(id=str(uuid.uuid4()), author_id=author_id, text=comment_in.text)
    try:
        db.add(comment)
        await db.flush()
        db.add(PostComment(post_id=post_id, comment_id=comment.id))
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Post or author does not exist") from exc

    await db.refresh(comment)
    return _to_comment_schema(comment, post_id)

@store_operation
async def add_reply(db: AsyncSession, comment_id: str, author_id: str, reply_in: ReplyCreate) -> ReplySchema:
    """Reply to a comment"""
    reply = Reply(id=str(uuid.uuid4()), comment_id=comment_id, author_id=author_id, text=reply_in.text)
    db.add(reply)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Comment or author does not exist") from exc

    await db.refresh(reply)
    return ReplySchema.model_validate(reply)

@store_operation
async def list_post_comments(
    db: AsyncSession, post_id: str, skip: int = 0, limit: int = 100
) -> List[CommentWithReplies]:
    """Get the comments of a post with their replies"""
    check_page(limit, skip)
    comments = (
        await db.execute(
            select(Comment)
            .join(PostComment, PostComment.comment_id == Comment.id)
            .where(PostComment.post_id == post_id)
            .order_by(Comment.created_at.desc(), Comment.id)
            .offset(skip)
            .limit(limit)
        )
    ).scalars().all()
    if not comments:
        return []

    replies = defaultdict(list)
    reply_rows = (
        await db.execute(
            select(Reply)
            .where(Reply.comment_id.in_([comment.id for comment in comments]))
            .order_by(Reply.created_at.asc(), Reply.id)
        )
    ).scalars().all()
    for reply in reply_rows:
        replies[reply.comment_id].append(ReplySchema.model_validate(reply))

    return [
        CommentWithReplies(**_to_comment_schema(comment, post_id).model_dump(), replies=replies[comment.id])
        for comment in comments
    ]
