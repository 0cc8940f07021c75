from typing import List, Optional
from sqlalchemy.orm import Session

from ridesharex.models.listing import Listing
from ridesharex.models.status import ApprovalStatus


class ListingCRUD:
    def create_listing(self, db: Session, host_id: str, data: dict) -> Listing:
        listing = Listing(
            host_id=host_id,
            title=data["title"],
            make=data["make"],
            model=data["model"],
            year=data.get("year"),
            daily_rate=data["daily_rate"],
            location=data.get("location"),
            description=data.get("description"),
            status=ApprovalStatus.PENDING.value,
            is_available=True,
        )
        db.add(listing)
        db.commit()
        db.refresh(listing)
        return listing

    def get_listing(self, db: Session, listing_id: str) -> Optional[Listing]:
        return db.get(Listing, listing_id)

    def get_listings(
        self,
        db: Session,
        status: Optional[str] = None,
        host_id: Optional[str] = None,
        bookable: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Listing]:
        q = db.query(Listing)
        if status:
            q = q.filter(Listing.status == status)
        if host_id:
            q = q.filter(Listing.host_id == host_id)
        if bookable is True:
            q = q.filter(Listing.status == ApprovalStatus.APPROVED.value, Listing.is_available.is_(True))
        elif bookable is False:
            q = q.filter(
                (Listing.status != ApprovalStatus.APPROVED.value) | (Listing.is_available.is_(False))
            )
        return q.order_by(Listing.created_at.desc()).offset(skip).limit(limit).all()

# Create instance
listing_crud = ListingCRUD()
