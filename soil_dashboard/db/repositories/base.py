"""
Base repository with the shared SQLite execution helpers.

Repositories receive an open ``sqlite3.Connection``; opening, committing and
closing it is the caller's job (normally ``get_connection()``).

  - No ORM: every statement is written out in a repository method.
  - Repositories accept and return Pydantic models, never raw rows.
  - ``sqlite3.Row`` (set by ``get_connection()``) gives name-based column access.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

logger = logging.getLogger(__name__)

Params = tuple[Any, ...] | dict[str, Any]


class BaseRepository:
    """SQL helpers shared by the report and run-metadata repositories.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        """Run one statement with ``?`` or ``:name`` placeholders."""
        logger.debug("SQL: %s | params: %s", " ".join(sql.split()), params)
        return self.conn.execute(sql, params)

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        """Run a query and return its first row, or ``None``."""
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        """Run a query and return every row."""
        return self.execute(sql, params).fetchall()

    def last_insert_rowid(self) -> int:
        """Rowid assigned by the most recent INSERT on this connection."""
        row = self.fetchone("SELECT last_insert_rowid() AS rowid;")
        assert row is not None
        return int(row["rowid"])
