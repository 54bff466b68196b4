from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_clock, require_role_dep
from backend.app.db import get_db
from backend.app.models import ROLE_ADMIN, User
from backend.app.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])

UserRole = Literal["ADMIN", "USER"]


class UserOut(BaseModel):
    id: str
    name: Optional[str]
    email: str
    role: str
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserUpdateIn(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    role: Optional[UserRole] = None


class UserPhoneIn(BaseModel):
    phone: Optional[str] = Field(..., max_length=40)


@router.get("", response_model=List[UserOut])
def list_users(
    db: Session = Depends(get_db),
    admin: User = Depends(require_role_dep(ROLE_ADMIN)),
):
    return user_service.list_users(db)


@router.patch("", response_model=UserOut)
def update_user(
    body: UserUpdateIn,
    user_id: Optional[str] = Query(None, alias="userId", description="defaults to the caller"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_role_dep(ROLE_ADMIN)),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        return user_service.update_user(
            db,
            user_id or admin.id,
            name=body.name,
            role=body.role,
            now=clock(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.patch("/phone", response_model=UserOut)
def set_user_phone(
    body: UserPhoneIn,
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_role_dep(ROLE_ADMIN)),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    if not user_id:
        raise HTTPException(status_code=400, detail="Missing required query param: userId")
    return user_service.set_user_phone(db, user_id, body.phone, now=clock())
