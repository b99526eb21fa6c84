"""Import a transfer CSV into one owner's inventory, all or nothing.

Flow of a single call::

    validating-file -> parsing -> resolving-computers -> resolving-components
        -> committed | rolled-back

Rows are split by ``record_type`` and handled in two passes inside one
transaction: every computer row first, then every component row, so a
component can point at a computer that appears later in the same file.

Per-row rules:

* A serial number the owner already has is skipped quietly and not counted.
  Re-importing an owner's own export therefore changes nothing.
* A component whose ``computer_serial_number`` matches none of the owner's
  computers is created as a spare rather than rejected.
* Unknown lookup names, missing required fields, unknown record types and
  validation failures are errors. Any error rolls the whole import back.

Lookup tables are never written to; an unknown model or type name is always
an error so typos cannot grow the tables.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud.components import create_component, owner_has_component_serial
from ..crud.computers import create_computer, get_owner_computer_by_serial, owner_has_computer_serial
from ..models.lookups import ComponentCondition, ComponentType, ComputerCondition, ComputerModel, RunStatus
from ..models.owner import Owner
from .transfer_format import (
    CSV_HEADERS,
    PARENT_SERIAL_COLUMN,
    RECORD_COMPONENT,
    RECORD_COMPUTER,
    LookupContext,
    cell,
    missing_headers,
    required_error,
    row_error,
    row_is_blank,
    summarize_errors,
)

LOGGER = logging.getLogger(__name__)

CSV_CONTENT_TYPES = {"text/csv"}


class ImportState(str, Enum):
    VALIDATING_FILE = "validating-file"
    PARSING = "parsing"
    RESOLVING_COMPUTERS = "resolving-computers"
    RESOLVING_COMPONENTS = "resolving-components"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled-back"


class Outcome(str, Enum):
    CREATED = "created"
    SKIPPED = "skipped"
    DOWNGRADED = "downgraded"
    ERRORED = "errored"


@dataclass(frozen=True)
class RowOutcome:
    kind: Outcome
    row_num: int
    record_type: str
    serial_number: Optional[str] = None
    error: Optional[str] = None
    # A store-level failure leaves the session unusable; stop processing.
    halt: bool = False

    @property
    def persisted(self) -> bool:
        return self.kind in (Outcome.CREATED, Outcome.DOWNGRADED)


@dataclass
class ImportUpload:
    """An uploaded file as the importer sees it.

    ``size`` is taken from the upload when the web layer knows it; otherwise
    it is measured by seeking, so an oversized file is never read.
    """

    filename: Optional[str]
    content_type: Optional[str]
    stream: Optional[BinaryIO]
    size: Optional[int] = None

    @classmethod
    def from_bytes(
        cls,
        content: bytes | str,
        *,
        filename: str = "import.csv",
        content_type: Optional[str] = "text/csv",
    ) -> "ImportUpload":
        raw = content.encode("utf-8") if isinstance(content, str) else content
        return cls(filename=filename, content_type=content_type, stream=io.BytesIO(raw), size=len(raw))

    def byte_size(self) -> int:
        if self.size is not None:
            return self.size
        if self.stream is None:
            return 0
        position = self.stream.tell()
        self.stream.seek(0, io.SEEK_END)
        size = self.stream.tell()
        self.stream.seek(position)
        return size

    def read(self) -> bytes:
        if self.stream is None:
            return b""
        self.stream.seek(0)
        return self.stream.read()

    def looks_like_csv(self) -> bool:
        media_type = (self.content_type or "").split(";", 1)[0].strip().lower()
        return media_type in CSV_CONTENT_TYPES or (self.filename or "").lower().endswith(".csv")


@dataclass
class ImportResult:
    success: bool
    computer_count: int = 0
    component_count: int = 0
    error: Optional[str] = None
    skipped: list[dict] = field(default_factory=list)
    downgraded_rows: list[int] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str) -> "ImportResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "computer_count": self.computer_count,
            "component_count": self.component_count,
            "skipped": list(self.skipped),
            "downgraded_rows": list(self.downgraded_rows),
        }


@dataclass
class ParsedRow:
    row_num: int
    values: dict[str, Optional[str]]
    fields: list[str] = field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return any(value.strip() for value in self.fields)


def validate_upload(upload: Optional[ImportUpload], max_bytes: int) -> Optional[str]:
    """Return a file-level error message, or ``None`` when the upload may be parsed."""

    if upload is None or upload.stream is None:
        return "No file provided"
    if upload.byte_size() > max_bytes:
        return f"File exceeds {max_bytes // (1024 * 1024)}MB limit"
    if not upload.looks_like_csv():
        return "File must be a CSV (.csv)"
    return None


def parse_rows(text: str) -> tuple[list[str], list[ParsedRow]]:
    """Split CSV text into its header and numbered data rows.

    Row numbers are 1-based file records with the header as row 1; blank
    lines keep their number so messages point at the right spot.
    """

    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        headers = [header.strip() for header in next(reader)]
    except StopIteration:
        return [], []
    rows: list[ParsedRow] = []
    for row_num, fields in enumerate(reader, start=2):
        values = {header: (fields[index] if index < len(fields) else None) for index, header in enumerate(headers)}
        rows.append(ParsedRow(row_num=row_num, values=values, fields=fields))
    return headers, rows


class OwnerImporter:
    """Runs one import for one owner against one session."""

    def __init__(self, db: Session, owner: Owner, *, max_bytes: Optional[int] = None) -> None:
        self.db = db
        self.owner = owner
        self.owner_id = owner.id
        self.max_bytes = max_bytes if max_bytes is not None else settings.MAX_IMPORT_BYTES
        self.lookups = LookupContext(db)
        self.state = ImportState.VALIDATING_FILE
        self.errors: list[str] = []
        self.outcomes: list[RowOutcome] = []

    def _enter(self, state: ImportState) -> None:
        self.state = state
        LOGGER.debug(
            "owner_import.state",
            extra={"extra_data": {"owner_id": self.owner_id, "state": state.value}},
        )

    # -- entry point -------------------------------------------------------

    def run(self, upload: Optional[ImportUpload]) -> ImportResult:
        self._enter(ImportState.VALIDATING_FILE)
        file_error = validate_upload(upload, self.max_bytes)
        if file_error:
            return self._reject(file_error)

        self._enter(ImportState.PARSING)
        try:
            text = upload.read().decode("utf-8-sig")
        except UnicodeDecodeError:
            return self._reject("File must be UTF-8 encoded text")

        try:
            headers, rows = parse_rows(text)
        except csv.Error as exc:
            return self._reject(f"Could not parse CSV: {exc}")

        # A blank first line leaves no header; that is only fine when nothing follows.
        if headers or any(row.has_content for row in rows):
            missing = missing_headers(headers)
            if missing:
                return self._reject(f"Missing required CSV columns: {', '.join(missing)}")

        computer_rows, component_rows = self._classify(rows)

        try:
            self._enter(ImportState.RESOLVING_COMPUTERS)
            halted = self._run_pass(computer_rows, self.process_computer_row)
            if not halted:
                self._enter(ImportState.RESOLVING_COMPONENTS)
                self._run_pass(component_rows, self.process_component_row)

            if self.errors:
                self.db.rollback()
                self._enter(ImportState.ROLLED_BACK)
                return self._finish_failure(summarize_errors(self.errors))

            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            self._enter(ImportState.ROLLED_BACK)
            LOGGER.exception("owner_import.unexpected_error", extra={"extra_data": {"owner_id": self.owner_id}})
            return self._finish_failure(f"Unexpected error: {exc}")

        self._enter(ImportState.COMMITTED)
        return self._finish_success()

    # -- parsing -----------------------------------------------------------

    def _classify(self, rows: list[ParsedRow]) -> tuple[list[ParsedRow], list[ParsedRow]]:
        computer_rows: list[ParsedRow] = []
        component_rows: list[ParsedRow] = []
        for row in rows:
            raw_type = row.values.get("record_type")
            record_type = (raw_type or "").strip().lower()
            if record_type == RECORD_COMPUTER:
                computer_rows.append(row)
            elif record_type == RECORD_COMPONENT:
                component_rows.append(row)
            elif not row_is_blank(row.values):
                self.errors.append(
                    row_error(
                        row.row_num,
                        f"unknown record_type '{raw_type or ''}' (expected 'computer' or 'component')",
                    )
                )
        return computer_rows, component_rows

    def _run_pass(self, rows: list[ParsedRow], handler) -> bool:
        """Apply ``handler`` to each row in order; return True if processing must stop."""

        for row in rows:
            outcome = handler(row.values, row.row_num)
            self.outcomes.append(outcome)
            if outcome.error:
                self.errors.append(outcome.error)
            if outcome.halt:
                return True
        return False

    # -- per-row handlers --------------------------------------------------

    def process_computer_row(self, row: dict[str, Optional[str]], row_num: int) -> RowOutcome:
        serial_number = cell(row, "computer_serial_number")
        model_name = cell(row, "computer_model")

        def errored(message: str, *, halt: bool = False) -> RowOutcome:
            return RowOutcome(Outcome.ERRORED, row_num, RECORD_COMPUTER, serial_number, message, halt)

        if not serial_number:
            return errored(required_error(row_num, "computer_serial_number", RECORD_COMPUTER))
        if not model_name:
            return errored(required_error(row_num, "computer_model", RECORD_COMPUTER))

        if owner_has_computer_serial(self.db, self.owner_id, serial_number):
            return RowOutcome(Outcome.SKIPPED, row_num, RECORD_COMPUTER, serial_number)

        model, error = self.lookups.resolve(ComputerModel, model_name, row_num)
        if error:
            return errored(error)
        condition, error = self.lookups.resolve(ComputerCondition, cell(row, "computer_condition"), row_num)
        if error:
            return errored(error)
        run_status, error = self.lookups.resolve(RunStatus, cell(row, "computer_run_status"), row_num)
        if error:
            return errored(error)

        payload = {
            "serial_number": serial_number,
            "computer_model_id": model.id,
            "computer_condition_id": condition.id if condition else None,
            "run_status_id": run_status.id if run_status else None,
            "order_number": cell(row, "computer_order_number"),
            "history": cell(row, "computer_history"),
        }
        try:
            create_computer(self.db, self.owner_id, payload, commit=False)
        except ValueError as exc:
            return errored(row_error(row_num, str(exc)))
        except IntegrityError:
            return errored(row_error(row_num, f"serial number '{serial_number}' is already taken"), halt=True)
        return RowOutcome(Outcome.CREATED, row_num, RECORD_COMPUTER, serial_number)

    def process_component_row(self, row: dict[str, Optional[str]], row_num: int) -> RowOutcome:
        type_name = cell(row, "component_type")
        serial_number = cell(row, "component_serial_number")

        def errored(message: str, *, halt: bool = False) -> RowOutcome:
            return RowOutcome(Outcome.ERRORED, row_num, RECORD_COMPONENT, serial_number, message, halt)

        if not type_name:
            return errored(required_error(row_num, "component_type", RECORD_COMPONENT))
        component_type, error = self.lookups.resolve(ComponentType, type_name, row_num)
        if error:
            return errored(error)

        # Unnumbered components cannot be matched, so they are always created.
        if serial_number and owner_has_component_serial(self.db, self.owner_id, serial_number):
            return RowOutcome(Outcome.SKIPPED, row_num, RECORD_COMPONENT, serial_number)

        condition, error = self.lookups.resolve(ComponentCondition, cell(row, "component_condition"), row_num)
        if error:
            return errored(error)

        parent = None
        parent_serial = cell(row, PARENT_SERIAL_COLUMN)
        if parent_serial:
            parent = get_owner_computer_by_serial(self.db, self.owner_id, parent_serial)

        payload = {
            "component_type_id": component_type.id,
            "component_condition_id": condition.id if condition else None,
            "computer_id": parent.id if parent else None,
            "serial_number": serial_number,
            "order_number": cell(row, "component_order_number"),
            "description": cell(row, "component_description"),
        }
        try:
            create_component(self.db, self.owner_id, payload, commit=False)
        except ValueError as exc:
            return errored(row_error(row_num, str(exc)))
        except IntegrityError:
            return errored(row_error(row_num, f"serial number '{serial_number}' is already taken"), halt=True)

        kind = Outcome.DOWNGRADED if parent_serial and parent is None else Outcome.CREATED
        return RowOutcome(kind, row_num, RECORD_COMPONENT, serial_number)

    # -- results -----------------------------------------------------------

    def _reject(self, message: str) -> ImportResult:
        LOGGER.info(
            "owner_import.rejected",
            extra={"extra_data": {"owner_id": self.owner_id, "state": self.state.value, "error": message}},
        )
        return ImportResult.failure(message)

    def _finish_failure(self, message: str) -> ImportResult:
        LOGGER.info(
            "owner_import.rolled_back",
            extra={"extra_data": {"owner_id": self.owner_id, "error_count": len(self.errors)}},
        )
        return ImportResult.failure(message)

    def _finish_success(self) -> ImportResult:
        result = ImportResult(success=True)
        for outcome in self.outcomes:
            if outcome.persisted:
                if outcome.record_type == RECORD_COMPUTER:
                    result.computer_count += 1
                else:
                    result.component_count += 1
            if outcome.kind is Outcome.DOWNGRADED:
                result.downgraded_rows.append(outcome.row_num)
            elif outcome.kind is Outcome.SKIPPED:
                result.skipped.append(
                    {"row": outcome.row_num, "record_type": outcome.record_type, "serial_number": outcome.serial_number}
                )
        LOGGER.info(
            "owner_import.committed",
            extra={
                "extra_data": {
                    "owner_id": self.owner_id,
                    "computer_count": result.computer_count,
                    "component_count": result.component_count,
                    "skipped_count": len(result.skipped),
                }
            },
        )
        return result


def import_owner_csv(
    db: Session,
    owner: Owner,
    upload: Optional[ImportUpload],
    *,
    max_bytes: Optional[int] = None,
) -> ImportResult:
    """Import ``upload`` for ``owner``; see the module docstring for the rules."""

    return OwnerImporter(db, owner, max_bytes=max_bytes).run(upload)


__all__ = [
    "CSV_HEADERS",
    "ImportResult",
    "ImportState",
    "ImportUpload",
    "Outcome",
    "OwnerImporter",
    "RowOutcome",
    "import_owner_csv",
    "parse_rows",
    "validate_upload",
]
