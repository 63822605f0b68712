from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from app.modules.user_management.schemas.user import UserWithProfile

class FollowEdge(BaseModel):
    """Follow edge returned to client"""
    follower_id: str
    followed_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class FollowListEntry(BaseModel):
    """The user at the other end of an edge, with the edge itself"""
    user: UserWithProfile
    edge: FollowEdge

class FollowStatus(BaseModel):
    following: bool
