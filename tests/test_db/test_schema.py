"""Tests for the SQLite schema: idempotency, tables, indexes, initialisation check."""

from __future__ import annotations

import sqlite3

import pytest

from soil_dashboard.db.connection import get_connection
from soil_dashboard.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
    is_initialized,
)


class TestApplySchema:
    def test_all_tables_created(self, in_memory_db):
        tables = get_existing_tables(in_memory_db)
        for expected_table in ALL_TABLE_NAMES:
            assert expected_table in tables

    def test_idempotent_double_apply(self, in_memory_db):
        apply_schema(in_memory_db)
        assert set(ALL_TABLE_NAMES) <= set(get_existing_tables(in_memory_db))

    def test_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        assert "idx_reports_created" in indexes
        assert "idx_reports_lab" in indexes

    def test_report_id_is_primary_key(self, in_memory_db):
        row = ("R-1", "R", "1", "{}", "{}", "2024-01-01T00:00:00+00:00")
        sql = (
            "INSERT INTO soil_reports (report_id, report_number, lab_id, metadata_json,"
            " categories_json, created_at) VALUES (?, ?, ?, ?, ?, ?);"
        )
        in_memory_db.execute(sql, row)
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(sql, row)


class TestReportColumns:
    def test_source_file_column(self, in_memory_db):
        columns = {r[1] for r in in_memory_db.execute("PRAGMA table_info(soil_reports);")}
        assert "source_file" in columns


class TestIsInitialized:
    def test_true_after_schema(self, in_memory_db):
        assert is_initialized(in_memory_db) is True

    def test_false_on_empty_database(self):
        with get_connection(":memory:") as conn:
            assert is_initialized(conn) is False

    def test_false_when_a_table_is_missing(self, tmp_path):
        with get_connection(str(tmp_path / "soil.db")) as conn:
            apply_schema(conn)
            conn.execute("DROP TABLE run_metadata;")
            assert is_initialized(conn) is False


class TestGetConnection:
    def test_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "soil.db"
        with get_connection(str(db_path)) as conn:
            apply_schema(conn)
        assert db_path.exists()

    def test_rows_are_dict_like(self, tmp_path):
        with get_connection(str(tmp_path / "soil.db")) as conn:
            row = conn.execute("SELECT 1 AS one;").fetchone()
            assert row["one"] == 1

    def test_rollback_on_error(self, tmp_path):
        db_path = str(tmp_path / "soil.db")
        with get_connection(db_path) as conn:
            apply_schema(conn)
        with pytest.raises(RuntimeError):
            with get_connection(db_path) as conn:
                conn.execute(
                    "INSERT INTO run_metadata (run_slug, pipeline_stage, config_snapshot)"
                    " VALUES ('x', 'ingest', '{}');"
                )
                raise RuntimeError("boom")
        with get_connection(db_path) as conn:
            assert conn.execute("SELECT COUNT(*) FROM run_metadata;").fetchone()[0] == 0

    def test_in_memory(self):
        with get_connection(":memory:") as conn:
            apply_schema(conn)
            assert "soil_reports" in get_existing_tables(conn)
