"""Component queries and creation, always scoped to a single owner."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import case, select
from sqlalchemy.orm import Session, aliased

from ..models.component import Component
from ..models.computer import Computer
from ..models.lookups import ComponentType
from ..schemas.inventory import ComponentCreate, describe_validation_error


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def list_owner_components(db: Session, owner_id: int) -> list[Component]:
    """Return the owner's components: attached ones first, then spares.

    Each group is ordered by component type name, then by parent serial and id
    so repeated calls produce the same sequence.
    """

    parent = aliased(Computer)
    spare_last = case((Component.computer_id.is_(None), 1), else_=0)
    stmt = (
        select(Component)
        .join(ComponentType, ComponentType.id == Component.component_type_id)
        .outerjoin(parent, parent.id == Component.computer_id)
        .where(Component.owner_id == owner_id)
        .order_by(spare_last.asc(), ComponentType.name.asc(), parent.serial_number.asc(), Component.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def owner_has_component_serial(db: Session, owner_id: int, serial_number: str) -> bool:
    stmt = select(Component.id).where(
        Component.owner_id == owner_id,
        Component.serial_number == serial_number,
    )
    return db.execute(stmt).first() is not None


def create_component(db: Session, owner_id: int, payload: dict, *, commit: bool = True) -> Component:
    """Validate and persist a component for ``owner_id``.

    A parent computer, when given, must belong to the same owner.
    Raises ``ValueError`` when the payload fails validation.
    """

    try:
        data = ComponentCreate.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(describe_validation_error(exc)) from exc

    if data.computer_id is not None:
        parent = db.get(Computer, data.computer_id)
        if parent is None or parent.owner_id != owner_id:
            raise ValueError("computer must belong to the same owner as the component")

    component = Component(owner_id=owner_id, created_at=_utcnow(), **data.model_dump())
    db.add(component)
    if commit:
        db.commit()
        db.refresh(component)
    else:
        db.flush()
    return component
