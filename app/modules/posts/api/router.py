from typing import Any, List
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.modules.posts.likes.services.like import count_likes, get_likes_by_post, like_post, unlike_post
from app.modules.posts.schemas.post import Like, Post as PostSchema, PostCreate, SavedPost
from app.modules.posts.services.post import (
    create_post,
    delete_post,
    get_post,
    list_saved_posts,
    list_user_posts,
    save_post,
    unsave_post,
)

router = APIRouter()
logger = logging.getLogger("app")

async def _validate_post(db: AsyncSession, post_id: str) -> PostSchema:
    """Return the post or raise HTTPException"""
    post = await get_post(db, post_id)
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )
    return post

@router.post("/users/{user_id}/posts", response_model=PostSchema, status_code=status.HTTP_201_CREATED)
async def create_new_post(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: str,
    post_in: PostCreate,
) -> Any:
    """Create a post with optional tags"""
    return await create_post(db, post_in, user_id)

@router.get("/users/{user_id}/posts", response_model=List[PostSchema])
async def read_user_posts(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    return await list_user_posts(db, user_id, skip, limit)

@router.get("/users/{user_id}/saved-posts", response_model=List[PostSchema])
async def read_saved_posts(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    return await list_saved_posts(db, user_id, skip, limit)

@router.get("/posts/{post_id}", response_model=PostSchema)
async def read_post(post_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    return await _validate_post(db, post_id)

@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_post(post_id: str, db: AsyncSession = Depends(get_db)) -> Response:
    """Delete a post with its tags, likes, comment links and saves"""
    await delete_post(db, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/posts/{post_id}/likes", response_model=dict)
async def read_post_likes(post_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    """Likes of a post, newest first, with their count"""
    await _validate_post(db, post_id)
    likes: List[Like] = await get_likes_by_post(db, post_id)
    return {"count": await count_likes(db, post_id), "likes": [like.model_dump() for like in likes]}

@router.put("/posts/{post_id}/likes/{user_id}", response_model=Like, status_code=status.HTTP_201_CREATED)
async def like(post_id: str, user_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    await _validate_post(db, post_id)
    return await like_post(db, post_id, user_id)

@router.delete("/posts/{post_id}/likes/{user_id}", response_model=dict)
async def unlike(post_id: str, user_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    return {"removed": await unlike_post(db, post_id, user_id)}

@router.put("/posts/{post_id}/saves/{user_id}", response_model=SavedPost)
async def save(post_id: str, user_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    """Bookmark a post; saving it again returns the same bookmark"""
    await _validate_post(db, post_id)
    return await save_post(db, post_id, user_id)

@router.delete("/posts/{post_id}/saves/{user_id}", response_model=dict)
async def unsave(post_id: str, user_id: str, db: AsyncSession = Depends(get_db)) -> Any:
    return {"removed": await unsave_post(db, post_id, user_id)}
