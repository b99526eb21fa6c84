"""Owner records: creation, lookup and password checks."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.security import hash_password, verify_password
from ..models.owner import Owner

USER_NAME_MAX = 15


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def get_owner(db: Session, owner_id: int) -> Owner | None:
    return db.get(Owner, owner_id)


def get_owner_by_user_name(db: Session, user_name: str) -> Owner | None:
    """User names are matched case-insensitively."""

    stmt = select(Owner).where(func.lower(Owner.user_name) == (user_name or "").strip().lower())
    return db.execute(stmt).scalars().first()


def create_owner(db: Session, payload: dict) -> Owner:
    user_name = (payload.get("user_name") or "").strip()
    if not user_name:
        raise ValueError("user_name is required")
    if len(user_name) > USER_NAME_MAX:
        raise ValueError(f"user_name must be at most {USER_NAME_MAX} characters")
    email = (payload.get("email") or "").strip()
    if not email or "@" not in email:
        raise ValueError("a valid email is required")
    if get_owner_by_user_name(db, user_name):
        raise ValueError(f"user_name '{user_name}' is already taken")
    email_taken = db.execute(
        select(Owner.id).where(func.lower(Owner.email) == email.lower())
    ).scalars().first()
    if email_taken:
        raise ValueError(f"email '{email}' is already registered")

    password = payload.get("password")
    owner = Owner(
        user_name=user_name,
        email=email,
        password_hash=hash_password(password) if password else None,
        admin=bool(payload.get("admin", False)),
        created_at=_utcnow(),
    )
    db.add(owner)
    db.commit()
    db.refresh(owner)
    return owner


def authenticate_owner(db: Session, user_name: str, password: str) -> Owner | None:
    owner = get_owner_by_user_name(db, user_name)
    if owner is None or not verify_password(password, owner.password_hash):
        return None
    return owner
