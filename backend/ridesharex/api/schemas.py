from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ridesharex.models.listing import Listing


class TransitionOut(BaseModel):
    id: int
    entity_id: str
    entity_kind: str
    from_status: str
    to_status: str
    actor_id: str
    actor_role: str
    reason: Optional[str] = None
    occurred_at: datetime
    class Config:
        from_attributes = True


class UserOut(BaseModel):
    id: str
    email: str
    full_name: str
    phone: Optional[str] = None
    role: str
    status: str
    status_reason: Optional[str] = None
    last_reviewed_by: Optional[str] = None
    last_reviewed_at: Optional[datetime] = None
    version: int
    created_at: datetime
    class Config:
        from_attributes = True


class ListingOut(BaseModel):
    id: str
    host_id: str
    title: str
    make: str
    model: str
    year: Optional[int] = None
    daily_rate: float
    location: Optional[str] = None
    description: Optional[str] = None
    status: str
    is_available: bool
    is_bookable: bool
    status_reason: Optional[str] = None
    last_reviewed_by: Optional[str] = None
    last_reviewed_at: Optional[datetime] = None
    version: int
    created_at: datetime
    class Config:
        from_attributes = True


class TransitionIn(BaseModel):
    target_status: str = Field(alias="targetStatus")
    reason: Optional[str] = None
    expected_version: Optional[int] = Field(default=None, alias="expectedVersion")
    class Config:
        populate_by_name = True


class BulkTransitionIn(BaseModel):
    ids: List[str] = Field(min_length=1)
    target_status: str = Field(alias="targetStatus")
    reason: Optional[str] = None
    class Config:
        populate_by_name = True


def entity_out(entity):
    if isinstance(entity, Listing):
        return ListingOut.model_validate(entity)
    return UserOut.model_validate(entity)
