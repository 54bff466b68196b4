from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.models import ROLE_ADMIN, ROLE_USER, User, utcnow

logger = logging.getLogger(__name__)

ROLES = (ROLE_ADMIN, ROLE_USER)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _user_out(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "phone": user.phone,
        "created_at": _aware_utc(user.created_at),
        "updated_at": _aware_utc(user.updated_at),
    }


def require_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def list_users(db: Session) -> List[Dict[str, Any]]:
    """Newest first."""
    stmt = select(User).order_by(User.created_at.desc(), User.id.asc())
    return [_user_out(user) for user in db.execute(stmt).scalars().all()]


def update_user(
    db: Session,
    user_id: str,
    *,
    name: Optional[str] = None,
    role: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Only `name` and `role` are editable here. Raises ValueError when neither
    is given or the role is not one of ADMIN/USER.
    """
    if name is None and role is None:
        raise ValueError("At least one of 'name' or 'role' is required")
    if name is not None:
        name = name.strip()
        if not name:
            raise ValueError("'name' must not be blank")
    if role is not None and role not in ROLES:
        raise ValueError(f"Unknown role: {role!r}")

    user = require_user(db, user_id)
    if name is not None:
        user.name = name
    if role is not None:
        user.role = role
    user.updated_at = _naive_utc(now or utcnow())
    db.commit()
    db.refresh(user)
    logger.info("Updated user id=%s role=%s", user.id, user.role)
    return _user_out(user)


def set_user_phone(
    db: Session,
    user_id: str,
    phone: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """`phone=None` (or blank) clears the number."""
    user = require_user(db, user_id)
    user.phone = (phone or "").strip() or None
    user.updated_at = _naive_utc(now or utcnow())
    db.commit()
    db.refresh(user)
    logger.info("Updated phone for user id=%s", user.id)
    return _user_out(user)
