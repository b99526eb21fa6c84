"""Small, idempotent SQLite migrations run at startup after ``create_all``.

``create_all`` only builds missing tables. Databases created by earlier
releases are brought forward here: columns are added, never dropped.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

LOGGER = logging.getLogger(__name__)

# table -> {column: SQL type}
ADDITIVE_COLUMNS: dict[str, dict[str, str]] = {
    "computers": {
        "order_number": "VARCHAR(20)",
        "history": "TEXT",
        "computer_condition_id": "INTEGER REFERENCES computer_conditions(id)",
        "run_status_id": "INTEGER REFERENCES run_statuses(id)",
    },
    "components": {
        "serial_number": "VARCHAR(20)",
        "order_number": "VARCHAR(20)",
        "description": "TEXT",
        "component_condition_id": "INTEGER REFERENCES component_conditions(id)",
    },
}

# Per-owner serial uniqueness; the importer relies on these as a race backstop.
UNIQUE_INDEXES: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("computers", "ux_computers_owner_serial", ("owner_id", "serial_number")),
    ("components", "ux_components_owner_serial", ("owner_id", "serial_number")),
)


def _table_columns(engine: Engine, table: str) -> list[dict[str, object]]:
    """Fetch SQLite's description of a table; empty when the table is absent."""

    with engine.connect() as conn:
        return [dict(row) for row in conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()]


def _column_names(engine: Engine, table: str) -> set[str]:
    return {str(record["name"]) for record in _table_columns(engine, table)}


def _add_column_sqlite(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _has_unique_index(engine: Engine, table: str, cols: Iterable[str]) -> bool:
    """True when any unique index (named or autoindex) covers exactly ``cols``."""

    wanted = list(cols)
    with engine.connect() as conn:
        indexes = conn.execute(text(f"PRAGMA index_list({table})")).mappings().all()
        for index in indexes:
            if not index["unique"]:
                continue
            info = conn.execute(text(f"PRAGMA index_info('{index['name']}')")).mappings().all()
            if [row["name"] for row in sorted(info, key=lambda r: r["seqno"])] == wanted:
                return True
    return False


def _create_unique_index(engine: Engine, table: str, name: str, cols: Iterable[str]) -> None:
    cols_sql = ", ".join(cols)
    with engine.begin() as conn:
        conn.execute(text(f"CREATE UNIQUE INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def run_migrations(engine: Engine) -> None:
    """Bring a SQLite schema up to date with the models. Other dialects are left alone."""

    if engine.dialect.name != "sqlite":
        return

    for table, needed in ADDITIVE_COLUMNS.items():
        existing = _column_names(engine, table)
        if not existing:
            # Table absent; create_all builds it fresh.
            continue
        for name, dtype in needed.items():
            if name not in existing:
                LOGGER.info("migrate.add_column", extra={"extra_data": {"table": table, "column": name}})
                _add_column_sqlite(engine, table, f"{name} {dtype}")

    for table, name, cols in UNIQUE_INDEXES:
        if not _column_names(engine, table) or _has_unique_index(engine, table, cols):
            continue
        try:
            _create_unique_index(engine, table, name, cols)
        except IntegrityError:
            # Legacy rows already collide; leave the table as is and let an operator clean up.
            LOGGER.warning(
                "migrate.unique_index_skipped",
                extra={"extra_data": {"table": table, "index": name}},
            )
