"""
SQLite schema DDL for the report document store.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).

Tables:
  1. soil_reports  — one JSON document per report, keyed by report_id
  2. run_metadata  — ingestion audit log (no FKs; report_id is informational)

``soil_reports`` is a document table, not a normalised one: ``metadata_json``
and ``categories_json`` hold the pydantic model dumps verbatim. The
``report_number`` / ``lab_id`` columns are denormalised copies for listing
and ad-hoc SQL. ``source_file`` records the workbook a report came from.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_SOIL_REPORTS = """
CREATE TABLE IF NOT EXISTS soil_reports (
    report_id        TEXT    NOT NULL PRIMARY KEY,
    report_number    TEXT    NOT NULL,
    lab_id           TEXT    NOT NULL,
    metadata_json    TEXT    NOT NULL,
    categories_json  TEXT    NOT NULL,
    source_file      TEXT,
    created_at       TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_SOIL_REPORTS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_reports_created
    ON soil_reports(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_reports_lab
    ON soil_reports(lab_id, report_number);
"""

_DDL_RUN_METADATA = """
CREATE TABLE IF NOT EXISTS run_metadata (
    run_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug        TEXT    NOT NULL UNIQUE,
    pipeline_stage  TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'started',
    report_id       TEXT,
    source_file     TEXT,
    config_snapshot TEXT    NOT NULL,
    rows_processed  INTEGER NOT NULL DEFAULT 0,
    error_message   TEXT,
    started_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    finished_at     TEXT
);
"""

_ALL_DDL = [
    _DDL_SOIL_REPORTS,
    _DDL_SOIL_REPORTS_INDEXES,
    _DDL_RUN_METADATA,
]

ALL_TABLE_NAMES: list[str] = [
    "soil_reports",
    "run_metadata",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes.

    Idempotent: safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection``.
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return index names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def is_initialized(conn: sqlite3.Connection) -> bool:
    """True if every table in ``ALL_TABLE_NAMES`` exists.

    A database file can exist without tables (created by ``sqlite3.connect``
    before any DDL ran); readers treat that the same as a missing database.
    """
    return set(ALL_TABLE_NAMES) <= set(get_existing_tables(conn))
