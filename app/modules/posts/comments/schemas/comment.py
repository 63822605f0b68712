from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict

class CommentCreate(BaseModel):
    text: str

class ReplyCreate(BaseModel):
    text: str

class Reply(BaseModel):
    """Reply model returned to client"""
    id: str
    comment_id: str
    author_id: str
    text: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class Comment(BaseModel):
    """Comment model returned to client"""
    id: str
    post_id: str
    author_id: str
    text: str
    created_at: datetime
    updated_at: Optional[datetime] = None

class CommentWithReplies(Comment):
    """Comment model with replies"""
    replies: List[Reply] = []
