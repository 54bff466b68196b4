from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from backend.app.models import Transaction, User, utcnow

logger = logging.getLogger(__name__)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _txn_out(txn: Transaction) -> Dict[str, Any]:
    return {
        "id": txn.id,
        "concept": txn.concept,
        "amount": txn.amount,
        "date": _aware_utc(txn.date),
        "type": txn.type,
        "user_id": txn.user_id,
        "name": (txn.user.name if txn.user else None) or "",
        "created_at": _aware_utc(txn.created_at),
        "updated_at": _aware_utc(txn.updated_at),
    }


def list_transactions(db: Session, *, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Newest first. `user_id=None` lists every user's transactions."""
    stmt = (
        select(Transaction)
        .options(joinedload(Transaction.user))
        .order_by(Transaction.date.desc(), Transaction.id.asc())
    )
    if user_id:
        stmt = stmt.where(Transaction.user_id == user_id)
    return [_txn_out(txn) for txn in db.execute(stmt).scalars().all()]


def create_transaction(
    db: Session,
    *,
    user_id: str,
    concept: str,
    amount: Decimal,
    txn_type: str,
    when: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    if db.get(User, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")

    stamp = now or utcnow()
    txn = Transaction(
        concept=concept,
        amount=amount,
        type=txn_type,
        date=_naive_utc(when or stamp),
        user_id=user_id,
        created_at=_naive_utc(stamp),
        updated_at=_naive_utc(stamp),
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    logger.info("Created transaction id=%s type=%s user=%s", txn.id, txn.type, user_id)
    return _txn_out(txn)


def delete_transaction(db: Session, txn_id: str, *, owner_id: Optional[str] = None) -> None:
    """
    Deletes a transaction. When `owner_id` is given the row must belong to it;
    a foreign row is reported as 403 so ids of other users' rows are not confirmed.
    """
    txn = db.get(Transaction, txn_id)
    if owner_id is not None:
        if txn is None or txn.user_id != owner_id:
            raise HTTPException(status_code=403, detail="Access denied")
    elif txn is None:
        raise HTTPException(status_code=404, detail="Transaction not found")

    db.delete(txn)
    db.commit()
    logger.info("Deleted transaction id=%s", txn_id)
