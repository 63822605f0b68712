from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

Gender = Literal["male", "female"]
Role = Literal["user", "admin", "manager"]

class ProfileBase(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    profile_pic: Optional[str] = None
    gender: Optional[Gender] = None

class ProfileUpdate(ProfileBase):
    pass

class ProfileInfo(ProfileBase):
    """Profile columns exposed alongside a user"""
    is_banned: bool = False

    model_config = ConfigDict(from_attributes=True)

class UserCreate(ProfileBase):
    email: EmailStr
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username must not be empty")
        return v

class AccountUpdate(BaseModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: Optional[str] = None

class UserWithProfile(BaseModel):
    """User returned to callers; never carries the password hash"""
    id: str
    username: str
    email: str
    role: Role
    created_at: datetime
    updated_at: Optional[datetime] = None
    profile: Optional[ProfileInfo] = None

    model_config = ConfigDict(from_attributes=True)

class FollowerRef(BaseModel):
    follower_id: str
    followed_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class DiscoverUser(UserWithProfile):
    """User listed for discovery, annotated with its follower edges"""
    followers: List[FollowerRef] = []
    followed_by_current_user: bool = False
