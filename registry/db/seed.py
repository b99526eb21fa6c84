"""Default lookup values for a fresh registry.

Seeding is find-or-create, so running it against a populated database only
fills in whatever is missing.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..crud.lookups import ensure_lookup
from ..models.lookups import ComponentCondition, ComponentType, ComputerCondition, ComputerModel, RunStatus

LOGGER = logging.getLogger(__name__)

DEFAULT_LOOKUPS = {
    ComponentType: [
        "CPU",
        "Memory",
        "Disk Controller",
        "Disk",
        "Floppy Controller",
        "Floppy",
        "Tape Controller",
        "Tape Drive",
        "Network Controller",
        "Terminal Line Controller",
    ],
    ComputerModel: ["MicroVAX II", "MicroVAX I", "MicroPDP-11/73", "VAX-11/750"],
    ComputerCondition: [
        "Completely original",
        "Original with options replaced or removed",
        "Modified",
        "Frankencomputer",
    ],
    ComponentCondition: ["Working", "Defective", "Untested"],
    RunStatus: ["Running", "Not running", "Unknown"],
}


def seed_lookups(db: Session) -> int:
    """Insert any missing default lookup values and return how many were created."""

    created = 0
    for model, values in DEFAULT_LOOKUPS.items():
        for value in values:
            _, was_created = ensure_lookup(db, model, value)
            created += int(was_created)
    db.commit()
    if created:
        LOGGER.info("seed.lookups", extra={"extra_data": {"created": created}})
    return created
