from sqlalchemy import Column, String, DateTime, Text, ForeignKey

from app.db.session import Base, utcnow

class Post(Base):
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    image = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class PostTag(Base):
    __tablename__ = "post_tags"

    id = Column(String(36), primary_key=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), index=True)
    tag = Column(String(255), nullable=False)


class SavedPost(Base):
    __tablename__ = "save_posts"

    id = Column(String(36), primary_key=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
