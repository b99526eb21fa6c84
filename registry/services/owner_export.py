"""Serialise one owner's computers and components into the transfer CSV.

Computers come first, ordered by model name then serial. Components follow,
attached ones before spares, each group ordered by component type name. The
output re-imports cleanly: for the same owner it is a no-op, for another
owner it recreates the inventory.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud.components import list_owner_components
from ..crud.computers import list_owner_computers
from ..models.component import Component
from ..models.computer import Computer
from ..models.owner import Owner
from .transfer_format import CSV_HEADERS, RECORD_COMPONENT, RECORD_COMPUTER, blank_row

LOGGER = logging.getLogger(__name__)


def computer_row(computer: Computer) -> list[Optional[str]]:
    row = blank_row()
    row.update(
        record_type=RECORD_COMPUTER,
        computer_model=computer.model_name,
        computer_order_number=computer.order_number,
        computer_serial_number=computer.serial_number,
        computer_condition=computer.condition_name,
        computer_run_status=computer.run_status_name,
        computer_history=computer.history,
    )
    return [row[column] for column in CSV_HEADERS]


def component_row(component: Component) -> list[Optional[str]]:
    row = blank_row()
    row.update(
        record_type=RECORD_COMPONENT,
        # Parent reference, not a description of the computer.
        computer_serial_number=component.computer_serial_number,
        component_type=component.type_name,
        component_order_number=component.order_number,
        component_serial_number=component.serial_number,
        component_condition=component.condition_value,
        component_description=component.description,
    )
    return [row[column] for column in CSV_HEADERS]


def export_owner_csv(db: Session, owner: Owner) -> str:
    """Return the owner's inventory as CSV text, header row included."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    computers = list_owner_computers(db, owner.id)
    for computer in computers:
        writer.writerow(computer_row(computer))

    components = list_owner_components(db, owner.id)
    for component in components:
        writer.writerow(component_row(component))

    LOGGER.info(
        "owner_export.completed",
        extra={
            "extra_data": {
                "owner_id": owner.id,
                "computer_count": len(computers),
                "component_count": len(components),
            }
        },
    )
    return buffer.getvalue()


def export_filename(owner: Owner, today: date | None = None) -> str:
    """Suggested download name, e.g. ``registry_export_vaxorcist_2026-02-25.csv``."""

    day = today or date.today()
    return f"{settings.EXPORT_FILENAME_PREFIX}_{owner.user_name}_{day.isoformat()}.csv"
