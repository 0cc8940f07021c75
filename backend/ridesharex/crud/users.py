from typing import List, Optional
from sqlalchemy.orm import Session

from ridesharex.models.user import User
from ridesharex.models.status import ActorRole, ApprovalStatus

REGISTERABLE_ROLES = {ActorRole.RENTER.value, ActorRole.HOST.value}


class UserCRUD:
    def create_user(self, db: Session, data: dict) -> User:
        role = (data.get("role") or ActorRole.RENTER.value).strip().lower()
        if role not in REGISTERABLE_ROLES:
            raise ValueError(f"Invalid role '{role}'. Must be one of {sorted(REGISTERABLE_ROLES)}.")
        email = data["email"].strip().lower()
        if self.get_by_email(db, email):
            raise ValueError(f"Email '{email}' is already registered")

        user = User(
            email=email,
            full_name=data["full_name"],
            phone=data.get("phone"),
            role=role,
            status=ApprovalStatus.PENDING.value,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    def get_user(self, db: Session, user_id: str) -> Optional[User]:
        return db.get(User, user_id)

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.strip().lower()).first()

    def get_users(self, db: Session, status: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[User]:
        q = db.query(User)
        if status:
            q = q.filter(User.status == status)
        return q.order_by(User.created_at.desc()).offset(skip).limit(limit).all()

# Create instance
user_crud = UserCRUD()
