# backend/app/api/deps.py
from __future__ import annotations

from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db import get_db
from backend.app.models import ROLE_ADMIN, ROLE_USER, User, utcnow


def get_clock() -> Callable[[], datetime]:
    """
    Injectable "now". Report defaults and balance timestamps read time through
    this dependency so tests can pin it with app.dependency_overrides.
    """
    return utcnow


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """
    Header-based identity.

    Reads identity from headers:
      - X-User-Email (preferred; auto-provisions a USER record if missing)
      - X-User-Id    (fallback; must already exist)

    NOTE:
    - Session management lives in front of this service; this only resolves
      who is calling.
    - db must be injected via Depends(get_db) so FastAPI doesn't treat Session
      as a Pydantic field.
    """
    email = request.headers.get("X-User-Email")
    user_id = request.headers.get("X-User-Id")
    if not email and not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if email:
        normalized = email.strip().lower()
        if not normalized:
            raise HTTPException(status_code=401, detail="Invalid X-User-Email header")

        user = db.execute(select(User).where(User.email == normalized)).scalars().first()
        if not user:
            user = User(
                email=normalized,
                name=normalized.split("@")[0],
                role=ROLE_USER,
                created_at=utcnow(),
                updated_at=utcnow(),
            )
            db.add(user)
            db.commit()
            db.refresh(user)
        return user

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def is_admin(user: User) -> bool:
    return (user.role or "").upper() == ROLE_ADMIN


def require_role_dep(*roles: str) -> Callable[..., User]:
    """
    FastAPI dependency factory gating an endpoint on the caller's role.

    Usage:
      @router.get("/something")
      def something(user: User = Depends(require_role_dep("ADMIN"))):
          ...
    """
    allowed = {r.upper() for r in roles}

    def _dep(user: User = Depends(get_current_user)) -> User:
        if (user.role or "").upper() not in allowed:
            raise HTTPException(status_code=403, detail="Access denied")
        return user

    return _dep
