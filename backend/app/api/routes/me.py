from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.app.api.deps import get_current_user
from backend.app.models import User


router = APIRouter(prefix="/api", tags=["users"])


class MeOut(BaseModel):
    id: str
    email: str
    name: Optional[str]
    role: str
    phone: Optional[str] = None


@router.get("/me", response_model=MeOut)
def get_me(user: User = Depends(get_current_user)):
    return MeOut(id=user.id, email=user.email, name=user.name, role=user.role, phone=user.phone)
