from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator

class PostBase(BaseModel):
    text: str
    image: Optional[str] = None

class PostCreate(PostBase):
    tags: List[str] = []

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: List[str]) -> List[str]:
        return [tag.strip() for tag in v if tag and tag.strip()]

class PostInDBBase(PostBase):
    id: str
    user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class Post(PostInDBBase):
    """Post model returned to client"""
    tags: List[str] = []

class Like(BaseModel):
    post_id: str
    user_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class SavedPost(BaseModel):
    id: str
    post_id: str
    user_id: str

    model_config = ConfigDict(from_attributes=True)
