from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ridesharex.api.schemas import ListingOut
from ridesharex.core.database import get_db
from ridesharex.crud.listings import listing_crud
from ridesharex.crud.users import user_crud
from ridesharex.deps.auth import CurrentUser, get_current_user, require_role
from ridesharex.deps.services import get_lifecycle
from ridesharex.services.lifecycle import ApprovalLifecycleService

router = APIRouter(prefix="/api/listings", tags=["listings"])


class ListingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    make: str = Field(min_length=1, max_length=64)
    model: str = Field(min_length=1, max_length=64)
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    daily_rate: float = Field(gt=0)
    location: Optional[str] = None
    description: Optional[str] = None


class ListingUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    make: Optional[str] = Field(default=None, min_length=1, max_length=64)
    model: Optional[str] = Field(default=None, min_length=1, max_length=64)
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    daily_rate: Optional[float] = Field(default=None, gt=0)
    location: Optional[str] = None
    description: Optional[str] = None
    expected_version: Optional[int] = Field(default=None, alias="expectedVersion")
    class Config:
        populate_by_name = True


class AvailabilityIn(BaseModel):
    is_available: bool = Field(alias="isAvailable")
    expected_version: Optional[int] = Field(default=None, alias="expectedVersion")
    class Config:
        populate_by_name = True


@router.post("", response_model=ListingOut, status_code=201)
def create_listing(
    body: ListingCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_role("host")),
):
    """Listing-creation flow: new listings start pending review and available."""
    if not user_crud.get_user(db, user.id):
        raise HTTPException(status_code=404, detail="Host account not found")
    listing = listing_crud.create_listing(db, user.id, body.model_dump())
    return ListingOut.model_validate(listing)


@router.get("", response_model=List[ListingOut])
def list_listings(
    status: Optional[str] = None,
    host_id: Optional[str] = None,
    bookable: Optional[bool] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    # renters (and hosts browsing others) only ever see bookable listings
    if user.role != "admin" and host_id != user.id:
        status, bookable = None, True
    rows = listing_crud.get_listings(db, status=status, host_id=host_id, bookable=bookable, skip=skip, limit=limit)
    return [ListingOut.model_validate(r) for r in rows]


@router.get("/{listing_id}", response_model=ListingOut)
def get_listing(listing_id: str, db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    listing = listing_crud.get_listing(db, listing_id)
    visible = listing is not None and (
        user.role == "admin" or listing.host_id == user.id or listing.is_bookable
    )
    if not visible:
        raise HTTPException(status_code=404, detail="Listing not found")
    return ListingOut.model_validate(listing)


@router.patch("/{listing_id}/availability", response_model=ListingOut)
def set_availability(
    listing_id: str,
    body: AvailabilityIn,
    user: CurrentUser = Depends(get_current_user),
    svc: ApprovalLifecycleService = Depends(get_lifecycle),
):
    listing = svc.set_availability(listing_id, body.is_available, user, expected_version=body.expected_version)
    return ListingOut.model_validate(listing)


@router.patch("/{listing_id}", response_model=ListingOut)
def update_listing(
    listing_id: str,
    body: ListingUpdate,
    user: CurrentUser = Depends(get_current_user),
    svc: ApprovalLifecycleService = Depends(get_lifecycle),
):
    """Owner edit. Editing an approved or rejected listing resubmits it for review."""
    changes = body.model_dump(exclude_unset=True, exclude={"expected_version"})
    listing = svc.edit_listing(listing_id, changes, user, expected_version=body.expected_version)
    return ListingOut.model_validate(listing)
