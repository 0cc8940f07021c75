from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, Text
from ridesharex.core.database import Base
from ridesharex.core.time import utc_now

class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)   # recipient
    entity_kind = Column(String(16), nullable=False)
    entity_id = Column(String(36), nullable=False)
    from_status = Column(String(16), nullable=True)
    to_status = Column(String(16), nullable=False)
    message = Column(String(1000), nullable=False)
    reason = Column(Text, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
