from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel

from app.modules.posts.comments.schemas.comment import Comment
from app.modules.posts.schemas.post import Like
from app.modules.user_management.schemas.user import UserWithProfile

class FeedPost(BaseModel):
    """Post in the following feed, with its author and nested content"""
    id: str
    text: str
    image: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    author: UserWithProfile
    followed_at: datetime  # when the viewer followed the author
    comments: List[Comment] = []
    likes: List[Like] = []
    tags: List[str] = []
