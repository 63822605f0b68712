from typing import Any, List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db, with_deadline
from app.modules.home_feed.schemas.feed import FeedPost
from app.modules.home_feed.services.feed import get_following_feed

router = APIRouter()

@router.get("/{user_id}/feed", response_model=List[FeedPost])
async def read_home_feed(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: str,
    limit: int = Query(20, ge=1, le=100, description="Number of followed users to read posts from"),
) -> Any:
    """Posts from the users user_id follows, most recently followed first"""
    return await with_deadline(get_following_feed(db, user_id, limit), settings.QUERY_TIMEOUT_SECONDS)
