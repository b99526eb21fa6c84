"""Computer queries and creation, always scoped to a single owner."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.computer import Computer
from ..models.lookups import ComputerModel
from ..schemas.inventory import ComputerCreate, describe_validation_error


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def list_owner_computers(db: Session, owner_id: int) -> list[Computer]:
    """Return the owner's computers ordered by model name, then serial number."""

    stmt = (
        select(Computer)
        .join(ComputerModel, ComputerModel.id == Computer.computer_model_id)
        .where(Computer.owner_id == owner_id)
        .order_by(ComputerModel.name.asc(), Computer.serial_number.asc())
    )
    return list(db.execute(stmt).scalars().all())


def get_owner_computer_by_serial(db: Session, owner_id: int, serial_number: str) -> Computer | None:
    stmt = select(Computer).where(
        Computer.owner_id == owner_id,
        Computer.serial_number == serial_number,
    )
    return db.execute(stmt).scalars().first()


def owner_has_computer_serial(db: Session, owner_id: int, serial_number: str) -> bool:
    stmt = select(Computer.id).where(
        Computer.owner_id == owner_id,
        Computer.serial_number == serial_number,
    )
    return db.execute(stmt).first() is not None


def create_computer(db: Session, owner_id: int, payload: dict, *, commit: bool = True) -> Computer:
    """Validate and persist a computer for ``owner_id``.

    With ``commit=False`` the row is only flushed, leaving the surrounding
    transaction open for the caller to commit or roll back.
    Raises ``ValueError`` when the payload fails validation.
    """

    try:
        data = ComputerCreate.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(describe_validation_error(exc)) from exc

    computer = Computer(owner_id=owner_id, created_at=_utcnow(), **data.model_dump())
    db.add(computer)
    if commit:
        db.commit()
        db.refresh(computer)
    else:
        db.flush()
    return computer
