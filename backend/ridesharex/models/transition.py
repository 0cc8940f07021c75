from sqlalchemy import Column, Integer, String, DateTime, Text, Index
from ridesharex.core.database import Base
from ridesharex.core.time import utc_now

class TransitionRecord(Base):
    """Append-only audit entry; one row per status change."""
    __tablename__ = "status_transitions"
    __table_args__ = (
        Index("ix_status_transitions_entity", "entity_kind", "entity_id", "occurred_at"),
    )

    id = Column(Integer, primary_key=True)
    entity_id = Column(String(36), nullable=False)
    entity_kind = Column(String(16), nullable=False)      # "user" | "listing"
    from_status = Column(String(16), nullable=False)
    to_status = Column(String(16), nullable=False)
    actor_id = Column(String(36), nullable=False, index=True)
    actor_role = Column(String(16), nullable=False)
    reason = Column(Text, nullable=True)
    occurred_at = Column(DateTime, default=utc_now, nullable=False)
