from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_clock, get_current_user, is_admin
from backend.app.db import get_db
from backend.app.models import User
from backend.app.services import transaction_service

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])

TransactionType = Literal["INCOME", "EXPENSE"]


class TransactionOut(BaseModel):
    id: str
    concept: str
    amount: float
    date: datetime
    type: TransactionType
    user_id: str
    name: str
    created_at: datetime
    updated_at: datetime


class TransactionCreateIn(BaseModel):
    concept: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    type: TransactionType
    date: Optional[datetime] = None
    user_id: Optional[str] = None


def _check_scope(user: User, requested_user_id: Optional[str]) -> None:
    if not is_admin(user) and requested_user_id and requested_user_id != user.id:
        raise HTTPException(status_code=403, detail="Access denied")


@router.get("", response_model=List[TransactionOut])
def list_transactions(
    user_id: Optional[str] = Query(None, description="ADMIN only: filter by owner"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """USER callers only ever see their own rows; ADMIN sees everything unless filtered."""
    _check_scope(user, user_id)
    owner = user_id if is_admin(user) else user.id
    return transaction_service.list_transactions(db, user_id=owner)


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    body: TransactionCreateIn,
    user_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    requested = user_id or body.user_id
    _check_scope(user, requested)
    owner = (requested or user.id) if is_admin(user) else user.id
    return transaction_service.create_transaction(
        db,
        user_id=owner,
        concept=body.concept.strip(),
        amount=body.amount,
        txn_type=body.type,
        when=body.date,
        now=clock(),
    )


@router.delete("/{txn_id}", status_code=204)
def delete_transaction(
    txn_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    owner_id = None if is_admin(user) else user.id
    transaction_service.delete_transaction(db, txn_id, owner_id=owner_id)
    return Response(status_code=204)
