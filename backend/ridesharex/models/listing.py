import uuid
from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship

from ridesharex.core.database import Base
from ridesharex.core.time import utc_now
from ridesharex.models.status import ApprovalStatus

class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("status IN ('pending','approved','rejected')", name="ck_listings_status"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    host_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    make = Column(String(64), nullable=False)
    model = Column(String(64), nullable=False)
    year = Column(Integer, nullable=True)
    daily_rate = Column(Numeric(10, 2), nullable=False)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    # approval axis and availability axis are independent
    status = Column(String(16), default=ApprovalStatus.PENDING.value, nullable=False, index=True)
    is_available = Column(Boolean, default=True, nullable=False)
    status_reason = Column(Text, nullable=True)
    last_reviewed_by = Column(String(36), nullable=True)
    last_reviewed_at = Column(DateTime, nullable=True)
    version = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, nullable=False)

    host = relationship("User", back_populates="listings")

    @property
    def owner_id(self) -> str:
        return self.host_id

    @property
    def is_bookable(self) -> bool:
        return self.status == ApprovalStatus.APPROVED.value and bool(self.is_available)
