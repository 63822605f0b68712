from sqlalchemy import Column, String, DateTime, ForeignKey, Index

from app.db.session import Base, utcnow

# Directed edge: follower_id follows followed_id.
# The composite primary key allows at most one edge per ordered pair;
# self-follows are rejected by the service layer, not by the table.
class Follow(Base):
    __tablename__ = "followers"

    follower_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    followed_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("followedIndex_followers", "followed_id", "created_at"),
        Index("followerIndex_followers", "follower_id", "created_at"),
    )
