"""vista_guard.tools.db_sqlite_tool

SQLite execution tool (CSV uploads, demo data, tests).

The file is opened read-only through a URI, and a progress handler aborts
statements that run past the timeout.
"""

from __future__ import annotations
import sqlite3
import time
from pathlib import Path
from typing import Any

from vista_guard.contracts.tool_base import DatabaseTool
from vista_guard.errors import QueryTimeoutError, ToolError

_PROGRESS_STEPS = 1000


class SqliteDatabaseTool(DatabaseTool):
    """Read-only SQLite execution wrapper."""

    dialect = "sqlite"

    def __init__(self, sqlite_path: str, logger):
        self.sqlite_path = sqlite_path
        self.logger = logger

    def _connect(self, timeout_seconds: int) -> sqlite3.Connection:
        path = Path(self.sqlite_path).expanduser().resolve()
        if not path.exists():
            raise ToolError(f"SQLite database not found: {path}")
        return sqlite3.connect(f"{path.as_uri()}?mode=ro", uri=True, timeout=timeout_seconds)

    def execute(self, sql: str, timeout_seconds: int) -> dict[str, Any]:
        start = time.time()
        deadline = start + timeout_seconds
        conn = self._connect(timeout_seconds)
        # Non-zero return interrupts the running statement.
        conn.set_progress_handler(lambda: 1 if time.time() > deadline else 0, _PROGRESS_STEPS)
        try:
            cur = conn.cursor()
            cur.execute(sql)
            columns = [d[0] for d in cur.description] if cur.description else []
            rows = cur.fetchall() if cur.description else []
            elapsed_ms = int((time.time() - start) * 1000)
            return {"columns": columns, "rows": [list(r) for r in rows], "elapsed_ms": elapsed_ms}
        except sqlite3.OperationalError as e:
            if "interrupted" in str(e).lower():
                raise QueryTimeoutError(f"Query timed out after {timeout_seconds}s") from e
            raise ToolError(f"SQLite query failed: {e}") from e
        finally:
            conn.close()

    def list_tables(self) -> list[str]:
        conn = self._connect(timeout_seconds=5)
        try:
            return self._table_names(conn)
        finally:
            conn.close()

    def list_columns(self) -> list[tuple[str, str, str]]:
        conn = self._connect(timeout_seconds=5)
        try:
            out: list[tuple[str, str, str]] = []
            for table in self._table_names(conn):
                for row in conn.execute("SELECT name, type FROM pragma_table_info(?)", (table,)).fetchall():
                    out.append((table, row[0], (row[1] or "").lower()))
            return out
        finally:
            conn.close()

    @staticmethod
    def _table_names(conn: sqlite3.Connection) -> list[str]:
        rows = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        ).fetchall()
        return [r[0] for r in rows]
