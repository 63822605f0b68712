from sqlalchemy import Column, String, DateTime, Boolean, Enum, ForeignKey

from app.db.session import Base, utcnow

NOTIFICATION_TYPES = ("like", "follow")

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, index=True)
    # "from"/"to" are reserved words in Python, hence the attribute names
    from_id = Column("from", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    to_id = Column("to", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(*NOTIFICATION_TYPES, name="type"), nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
