"""The owner transfer CSV layout and the helpers both directions share.

One file carries two record kinds. ``record_type`` says which; computer rows
fill the ``computer_*`` columns and component rows fill the ``component_*``
columns. ``computer_serial_number`` is the one column both kinds use: on a
computer row it is the computer's own serial, on a component row it names the
parent computer (blank for a spare).
"""

from __future__ import annotations

from typing import Mapping, Optional

from sqlalchemy.orm import Session

from ..crud.lookups import find_lookup

RECORD_COMPUTER = "computer"
RECORD_COMPONENT = "component"

CSV_HEADERS: tuple[str, ...] = (
    "record_type",
    "computer_model",
    "computer_order_number",
    "computer_serial_number",
    "computer_condition",
    "computer_run_status",
    "computer_history",
    "component_type",
    "component_order_number",
    "component_serial_number",
    "component_condition",
    "component_description",
)

PARENT_SERIAL_COLUMN = "computer_serial_number"

# How many row errors a failure message quotes before truncating.
ERROR_SAMPLE_SIZE = 3


def blank_row() -> dict[str, Optional[str]]:
    return {column: None for column in CSV_HEADERS}


def cell(row: Mapping[str, Optional[str]], column: str) -> Optional[str]:
    """Return the stripped value of ``column``; blank and missing cells become ``None``."""

    value = row.get(column)
    if value is None:
        return None
    value = value.strip()
    return value or None


def row_is_blank(row: Mapping[str, Optional[str]]) -> bool:
    return all(value is None or not str(value).strip() for value in row.values())


def missing_headers(headers: list[str] | None) -> list[str]:
    """Expected columns absent from ``headers``, in canonical order."""

    present = {header.strip() for header in headers or [] if header is not None}
    return [column for column in CSV_HEADERS if column not in present]


def row_error(row_num: int, message: str) -> str:
    return f"Row {row_num}: {message}"


def required_error(row_num: int, column: str, record_type: str) -> str:
    return row_error(row_num, f"{column} is required for {record_type} records")


def summarize_errors(errors: list[str]) -> str:
    """One error verbatim; several as a count plus the first few."""

    if len(errors) == 1:
        return errors[0]
    return f"{len(errors)} error(s). First: {' | '.join(errors[:ERROR_SAMPLE_SIZE])}"


class LookupContext:
    """Resolve lookup-table values by name for the length of one import.

    Results are cached per (table, value), misses included, since an import
    file usually repeats the same handful of model and type names.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self._cache: dict[tuple[str, str], object | None] = {}

    def find(self, model, value: str):
        key = (model.__tablename__, value)
        if key not in self._cache:
            self._cache[key] = find_lookup(self.db, model, value)
        return self._cache[key]

    def resolve(self, model, value: Optional[str], row_num: int) -> tuple[object | None, str | None]:
        """Resolve an optional value.

        Returns ``(None, None)`` for a blank value, ``(record, None)`` on a hit
        and ``(None, message)`` when a value is given but no row carries it.
        """

        if not value:
            return None, None
        record = self.find(model, value)
        if record is None:
            return None, row_error(
                row_num,
                f"{model.LABEL} '{value}' not found. Ask an admin to create it first.",
            )
        return record, None
