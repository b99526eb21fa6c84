import csv
import io
import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from registry.db.seed import seed_lookups
from registry.db.session import Base, build_engine
from registry.crud.components import list_owner_components
from registry.crud.computers import create_computer, list_owner_computers
from registry.crud.lookups import ensure_lookup
from registry.crud.owners import create_owner
from registry.models.component import Component
from registry.models.computer import Computer
from registry.models.lookups import ComputerModel
from registry.services import owner_import
from registry.services.owner_import import ImportUpload, import_owner_csv, parse_rows
from registry.services.transfer_format import CSV_HEADERS

# Ensure models are imported so metadata is populated
from registry import models as registry_models  # noqa: F401


@pytest.fixture()
def db_session():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        seed_lookups(session)
        ensure_lookup(session, ComputerModel, "PDP-11/70")
        session.commit()
        yield session
    finally:
        session.close()


@pytest.fixture()
def owner(db_session):
    return create_owner(db_session, {"user_name": "vaxorcist", "email": "vax@example.com"})


def make_csv(*rows, headers=CSV_HEADERS):
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(headers), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def computer(serial, model="PDP-11/70", **extra):
    return {"record_type": "computer", "computer_model": model, "computer_serial_number": serial, **extra}


def component(type_name="CPU", serial=None, parent=None, **extra):
    return {
        "record_type": "component",
        "component_type": type_name,
        "component_serial_number": serial,
        "computer_serial_number": parent,
        **extra,
    }


def run_import(db, owner, text, **kwargs):
    return import_owner_csv(db, owner, ImportUpload.from_bytes(text), **kwargs)


def count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_import_single_computer(db_session, owner):
    result = run_import(db_session, owner, make_csv(computer("SN-001")))

    assert result.to_dict() == {
        "success": True,
        "computer_count": 1,
        "component_count": 0,
        "skipped": [],
        "downgraded_rows": [],
    }
    (pdp,) = list_owner_computers(db_session, owner.id)
    assert pdp.serial_number == "SN-001"
    assert pdp.owner_id == owner.id


def test_import_creates_computer_and_attached_component(db_session, owner):
    text = make_csv(
        computer("SN-001", computer_condition="Modified", computer_run_status="Running", computer_history="Rescued"),
        component("CPU", serial="KD11-1", parent="SN-001", component_condition="Working"),
    )

    result = run_import(db_session, owner, text)

    assert result.success, result.error
    assert result.computer_count == 1
    assert result.component_count == 1
    assert result.skipped == []
    assert result.downgraded_rows == []

    (pdp,) = list_owner_computers(db_session, owner.id)
    assert pdp.model_name == "PDP-11/70"
    assert pdp.condition_name == "Modified"
    assert pdp.run_status_name == "Running"
    assert pdp.history == "Rescued"
    (cpu,) = list_owner_components(db_session, owner.id)
    assert cpu.type_name == "CPU"
    assert cpu.condition_value == "Working"
    assert cpu.computer_serial_number == "SN-001"


def test_missing_header_rejects_file(db_session, owner):
    headers = [column for column in CSV_HEADERS if column != "component_type"]
    text = make_csv(computer("SN-001"), headers=headers)

    result = run_import(db_session, owner, text)

    assert not result.success
    assert result.error == "Missing required CSV columns: component_type"
    assert result.to_dict() == {"success": False, "error": result.error}
    assert count(db_session, Computer) == 0


def test_unknown_model_rolls_back_whole_file(db_session, owner):
    text = make_csv(
        computer("SN-001"),
        computer("SN-002", model="Nonexistent Model XYZ"),
        component("Memory", parent="SN-001"),
    )

    result = run_import(db_session, owner, text)

    assert not result.success
    assert result.error == (
        "Row 3: Computer model 'Nonexistent Model XYZ' not found. Ask an admin to create it first."
    )
    assert count(db_session, Computer) == 0
    assert count(db_session, Component) == 0


def test_lookup_names_are_case_sensitive(db_session, owner):
    result = run_import(db_session, owner, make_csv(computer("SN-001"), component("cpu", parent="SN-001")))

    assert not result.success
    assert "Component type 'cpu' not found" in result.error
    assert count(db_session, Computer) == 0


def test_component_may_precede_its_computer(db_session, owner):
    text = make_csv(
        component("Disk", serial="RL02-7", parent="SN-LATE"),
        computer("SN-LATE"),
    )

    result = run_import(db_session, owner, text)

    assert result.success
    assert result.downgraded_rows == []
    (disk,) = list_owner_components(db_session, owner.id)
    assert disk.computer_serial_number == "SN-LATE"


def test_unknown_parent_becomes_spare(db_session, owner):
    text = make_csv(computer("SN-001"), component("Memory", serial="MS11-3", parent="SN-MISSING"))

    result = run_import(db_session, owner, text)

    assert result.success
    assert result.component_count == 1
    assert result.downgraded_rows == [3]
    (memory,) = list_owner_components(db_session, owner.id)
    assert memory.is_spare
    assert memory.computer_id is None


def test_parent_owned_by_someone_else_is_not_used(db_session, owner):
    other = create_owner(db_session, {"user_name": "pdpfan", "email": "pdp@example.com"})
    model = ensure_lookup(db_session, ComputerModel, "PDP-11/70")[0]
    create_computer(db_session, other.id, {"serial_number": "SN-OTHER", "computer_model_id": model.id})

    result = run_import(db_session, owner, make_csv(component("CPU", parent="SN-OTHER")))

    assert result.success
    assert result.downgraded_rows == [2]
    (cpu,) = list_owner_components(db_session, owner.id)
    assert cpu.is_spare


def test_existing_serials_are_skipped_silently(db_session, owner):
    model = ensure_lookup(db_session, ComputerModel, "PDP-11/70")[0]
    create_computer(db_session, owner.id, {"serial_number": "SN-001", "computer_model_id": model.id})

    result = run_import(db_session, owner, make_csv(computer("SN-001"), computer("SN-002")))

    assert result.success
    assert result.computer_count == 1
    assert result.skipped == [{"row": 2, "record_type": "computer", "serial_number": "SN-001"}]
    assert count(db_session, Computer) == 2


def test_same_serial_for_another_owner_is_not_a_duplicate(db_session, owner):
    other = create_owner(db_session, {"user_name": "pdpfan", "email": "pdp@example.com"})
    model = ensure_lookup(db_session, ComputerModel, "PDP-11/70")[0]
    create_computer(db_session, other.id, {"serial_number": "SN-001", "computer_model_id": model.id})

    result = run_import(db_session, owner, make_csv(computer("SN-001")))

    assert result.success
    assert result.computer_count == 1


def test_repeated_serial_within_file_keeps_first_row(db_session, owner):
    text = make_csv(
        computer("SN-001", computer_history="first"),
        computer("SN-001", computer_history="second"),
        component("CPU", serial="C-1"),
        component("CPU", serial="C-1"),
    )

    result = run_import(db_session, owner, text)

    assert result.success
    assert result.computer_count == 1
    assert result.component_count == 1
    assert [entry["row"] for entry in result.skipped] == [3, 5]
    (pdp,) = list_owner_computers(db_session, owner.id)
    assert pdp.history == "first"


def test_components_without_serial_are_always_created(db_session, owner):
    text = make_csv(component("Terminal Line Controller"), component("Terminal Line Controller"))

    first = run_import(db_session, owner, text)
    second = run_import(db_session, owner, text)

    assert first.component_count == 2
    assert second.component_count == 2
    assert count(db_session, Component) == 4


@pytest.mark.parametrize(
    "upload, expected",
    [
        (None, "No file provided"),
        (
            ImportUpload("big.csv", "text/csv", io.BytesIO(b"x"), size=11 * 1024 * 1024),
            "File exceeds 10MB limit",
        ),
        (
            ImportUpload.from_bytes("hello", filename="notes.txt", content_type="text/plain"),
            "File must be a CSV (.csv)",
        ),
    ],
)
def test_file_level_rejections(db_session, owner, upload, expected):
    result = import_owner_csv(db_session, owner, upload)

    assert not result.success
    assert result.error == expected


def test_csv_extension_is_enough_without_content_type(db_session, owner):
    upload = ImportUpload.from_bytes(make_csv(computer("SN-001")), filename="EXPORT.CSV", content_type=None)

    result = import_owner_csv(db_session, owner, upload)

    assert result.success
    assert result.computer_count == 1


def test_oversized_stream_is_measured_when_size_unknown(db_session, owner):
    upload = ImportUpload("big.csv", "text/csv", io.BytesIO(b"x" * 64), size=None)

    result = import_owner_csv(db_session, owner, upload, max_bytes=32)

    assert not result.success
    assert result.error.startswith("File exceeds")


def test_non_utf8_file_is_rejected(db_session, owner):
    upload = ImportUpload.from_bytes(b"\xff\xfe\x00bad", filename="bad.csv")

    result = import_owner_csv(db_session, owner, upload)

    assert result.error == "File must be UTF-8 encoded text"


def test_byte_order_mark_is_ignored(db_session, owner):
    text = "\ufeff" + make_csv(computer("SN-001"))

    result = run_import(db_session, owner, text)

    assert result.success
    assert result.computer_count == 1


@pytest.mark.parametrize("text", ["", make_csv()])
def test_empty_files_import_nothing(db_session, owner, text):
    result = run_import(db_session, owner, text)

    assert result.success
    assert (result.computer_count, result.component_count) == (0, 0)


def test_errors_are_summarised_after_three(db_session, owner):
    text = make_csv(*(computer(f"SN-{n}", model=f"Bad{n}") for n in range(4)))

    result = run_import(db_session, owner, text)

    assert not result.success
    assert result.error.startswith("4 error(s). First: Row 2: Computer model 'Bad0' not found.")
    assert result.error.count(" | ") == 2
    assert "Row 5" not in result.error


def test_required_fields_and_record_type(db_session, owner):
    text = make_csv(
        computer("", model="PDP-11/70"),
        computer("SN-002", model=""),
        component(""),
        {"record_type": "printer"},
    )

    result = run_import(db_session, owner, text)

    assert result.error.startswith("4 error(s). First: ")
    assert "Row 2: computer_serial_number is required for computer records" in result.error
    assert "Row 3: computer_model is required for computer records" in result.error
    # The unknown type is found while classifying, before either pass runs.
    assert "Row 5: unknown record_type 'printer'" in result.error


def test_record_type_is_case_insensitive(db_session, owner):
    result = run_import(db_session, owner, make_csv(computer("SN-001", record_type=" Computer ")))

    assert result.success
    assert result.computer_count == 1


def test_overlong_serial_reports_validation_error(db_session, owner):
    result = run_import(db_session, owner, make_csv(computer("X" * 21)))

    assert not result.success
    assert result.error.startswith("Row 2: serial_number:")


def test_blank_lines_keep_row_numbers():
    header = ",".join(CSV_HEADERS)
    text = f"{header}\n\ncomputer,Bad Model,,SN-9,,,,,,,,\n"

    headers, rows = parse_rows(text)

    assert headers == list(CSV_HEADERS)
    assert [row.row_num for row in rows] == [2, 3]
    assert rows[1].values["computer_serial_number"] == "SN-9"


def test_blank_rows_are_ignored(db_session, owner):
    header = ",".join(CSV_HEADERS)
    text = f"{header}\n,,,,,,,,,,,\n\ncomputer,Bad Model,,SN-9,,,,,,,,\n"

    result = run_import(db_session, owner, text)

    assert result.error.startswith("Row 4: Computer model 'Bad Model' not found")


def test_store_conflict_halts_and_rolls_back(db_session, owner, monkeypatch):
    monkeypatch.setattr(owner_import, "owner_has_computer_serial", lambda db, owner_id, serial: False)
    text = make_csv(computer("SN-001"), computer("SN-001"), computer("SN-003", model="Unknown"))

    result = run_import(db_session, owner, text)

    assert not result.success
    assert result.error == "Row 3: serial number 'SN-001' is already taken"
    assert count(db_session, Computer) == 0


def test_unexpected_failure_is_reported(db_session, owner, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(owner_import, "create_computer", explode)

    result = run_import(db_session, owner, make_csv(computer("SN-001")))

    assert not result.success
    assert result.error == "Unexpected error: disk on fire"
    assert count(db_session, Computer) == 0


def test_leading_blank_line_does_not_hide_rows(db_session, owner):
    text = "\n" + make_csv(computer("SN-001"), computer("SN-002", model="Nonexistent Model XYZ"))

    result = run_import(db_session, owner, text)

    assert not result.success
    assert result.error == f"Missing required CSV columns: {', '.join(CSV_HEADERS)}"
    assert count(db_session, Computer) == 0


def test_only_blank_lines_import_nothing(db_session, owner):
    result = run_import(db_session, owner, "\n\n,,\n")

    assert result.success
    assert (result.computer_count, result.component_count) == (0, 0)


@pytest.mark.parametrize(
    "row, message",
    [
        (computer("SN-001", computer_condition="Pristine"), "Row 2: Computer condition 'Pristine' not found."),
        (computer("SN-001", computer_run_status="Zombie"), "Row 2: Run status 'Zombie' not found."),
        (component("CPU", serial="C-1", component_condition="Smoking"), "Row 2: Component condition 'Smoking' not found."),
    ],
)
def test_unknown_optional_lookup_rolls_back(db_session, owner, row, message):
    text = make_csv(row, computer("SN-OK"), component("Memory", serial="M-OK"))

    result = run_import(db_session, owner, text)

    assert not result.success
    assert result.error == f"{message} Ask an admin to create it first."
    assert count(db_session, Computer) == 0
    assert count(db_session, Component) == 0
