"""Name-based access to the lookup tables."""

from __future__ import annotations

from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

LookupT = TypeVar("LookupT")


def _value_column(model):
    return getattr(model, model.LOOKUP_COLUMN)


def find_lookup(db: Session, model: type[LookupT], value: str) -> LookupT | None:
    """Exact, case-sensitive match on the table's value column."""

    stmt = select(model).where(_value_column(model) == value)
    return db.execute(stmt).scalars().first()


def list_lookup_values(db: Session, model) -> list[str]:
    column = _value_column(model)
    return list(db.execute(select(column).order_by(column)).scalars().all())


def ensure_lookup(db: Session, model: type[LookupT], value: str) -> tuple[LookupT, bool]:
    """Return the row for ``value``, creating it when absent. Only seeding and tests use this."""

    cleaned = (value or "").strip()
    if not cleaned:
        raise ValueError(f"{model.LABEL} value is required")
    existing = find_lookup(db, model, cleaned)
    if existing is not None:
        return existing, False
    record = model(**{model.LOOKUP_COLUMN: cleaned})
    db.add(record)
    db.flush()
    return record, True
