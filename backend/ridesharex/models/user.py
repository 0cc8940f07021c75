import uuid
from sqlalchemy import CheckConstraint, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import relationship

from ridesharex.core.database import Base
from ridesharex.core.time import utc_now
from ridesharex.models.status import ApprovalStatus, ActorRole

class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("status IN ('pending','approved','rejected')", name="ck_users_status"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    role = Column(String(16), default=ActorRole.RENTER.value, nullable=False)   # renter | host | admin

    status = Column(String(16), default=ApprovalStatus.PENDING.value, nullable=False, index=True)
    status_reason = Column(Text, nullable=True)
    last_reviewed_by = Column(String(36), nullable=True)
    last_reviewed_at = Column(DateTime, nullable=True)
    version = Column(Integer, default=0, nullable=False)   # optimistic concurrency token

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, nullable=False)

    listings = relationship("Listing", back_populates="host")

    @property
    def owner_id(self) -> str:
        return self.id
