from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ridesharex.api.schemas import UserOut
from ridesharex.core.database import get_db
from ridesharex.crud.users import user_crud
from ridesharex.deps.auth import CurrentUser, get_current_user, require_role

router = APIRouter(prefix="/api/users", tags=["users"])


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    full_name: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = None
    role: str = "renter"          # renter | host


@router.post("", response_model=UserOut, status_code=201)
def register_user(body: UserCreate, db: Session = Depends(get_db)):
    """Registration flow: every new account starts pending approval."""
    user = user_crud.create_user(db, body.model_dump())
    return UserOut.model_validate(user)


@router.get("/me", response_model=UserOut)
def get_me(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    row = user_crud.get_user(db, user.id)
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    return UserOut.model_validate(row)


@router.get("", response_model=List[UserOut])
def list_users(
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_role("admin")),
):
    return [UserOut.model_validate(u) for u in user_crud.get_users(db, status=status, skip=skip, limit=limit)]


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    if user.role != "admin" and user.id != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    row = user_crud.get_user(db, user_id)
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    return UserOut.model_validate(row)
