from collections import defaultdict
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import store_operation
from app.modules.follows.models.follow import Follow
from app.modules.home_feed.schemas.feed import FeedPost
from app.modules.posts.comments.services.comment import get_comments_for_posts
from app.modules.posts.likes.services.like import get_likes_for_posts
from app.modules.posts.models.post import Post
from app.modules.posts.services.post import get_tags_for_posts
from app.modules.user_management.models.user import Profile, User
from app.modules.user_management.services.user import check_page, to_user_with_profile

@store_operation
async def get_following_feed(db: AsyncSession, user_id: str, limit: int = 20) -> List[FeedPost]:
    """
    Posts of the users that user_id follows.

    `limit` caps the number of followed users read, newest follow first.
    Posts are grouped by author in that order, so an old post by a recently
    followed user comes before a new post by someone followed long ago.
    Within one author, newest post first.
    """
    check_page(limit)

    # Phase 1: followed users, newest edge first
    edges = (
        await db.execute(
            select(Follow.followed_id, Follow.created_at)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at.desc(), Follow.followed_id)
            .limit(limit)
        )
    ).all()
    if not edges:
        return []
    followee_ids = [followed_id for followed_id, _ in edges]
    followed_at = {followed_id: created_at for followed_id, created_at in edges}

    # Phase 2: their posts with authors, then nested content in batches
    rows = (
        await db.execute(
            select(Post, User, Profile)
            .join(User, User.id == Post.user_id)
            .outerjoin(Profile, Profile.user_id == User.id)
            .where(Post.user_id.in_(followee_ids))
            .order_by(Post.created_at.desc(), Post.id)
        )
    ).all()
    post_ids = [post.id for post, _, _ in rows]
    comments = await get_comments_for_posts(db, post_ids)
    likes = await get_likes_for_posts(db, post_ids)
    tags = await get_tags_for_posts(db, post_ids)

    posts_by_author = defaultdict(list)
    for post, author, profile in rows:
        posts_by_author[post.user_id].append(FeedPost(
            id=post.id,
            text=post.text,
            image=post.image,
            created_at=post.created_at,
            updated_at=post.updated_at,
            author=to_user_with_profile(author, profile),
            followed_at=followed_at[post.user_id],
            comments=comments[post.id],
            likes=likes[post.id],
            tags=tags[post.id],
        ))

    return [item for followed_id in followee_ids for item in posts_by_author[followed_id]]
