from sqlalchemy import Column, String, DateTime, ForeignKey

from app.db.session import Base, utcnow

# One like per user per post, enforced by the composite key
class PostLike(Base):
    __tablename__ = "post_likes"

    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
