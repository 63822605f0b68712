from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.sql import func

from app.db.session import Base, utcnow

USER_ROLES = ("user", "admin", "manager")
GENDERS = ("male", "female")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True)
    username = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(Enum(*USER_ROLES, name="role"), nullable=False, default="user")
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# Usernames are unique regardless of case
Index("usernameIndex", func.lower(User.username), unique=True)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    full_name = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    profile_pic = Column(Text, nullable=True)
    gender = Column(Enum(*GENDERS, name="gender", create_constraint=True), nullable=True)
    is_banned = Column(Boolean, default=False, nullable=False)
