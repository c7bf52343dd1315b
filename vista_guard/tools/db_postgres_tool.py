"""vista_guard.tools.db_postgres_tool

PostgreSQL execution tool using psycopg 3.

Each query runs in its own read-only transaction with SET LOCAL
statement_timeout, so the timeout cannot leak into other work on the
connection. Safety is enforced by SqlGuard before anything reaches here.
"""

from __future__ import annotations
import time
from typing import Any, Optional

import psycopg
from psycopg import errors as pg_errors

from vista_guard.contracts.tool_base import DatabaseTool
from vista_guard.errors import QueryTimeoutError, ToolError

_TABLES_SQL = """
SELECT table_schema, table_name
FROM information_schema.tables
WHERE table_schema NOT IN ('pg_catalog', 'information_schema')
  AND table_type = 'BASE TABLE'
ORDER BY table_schema, table_name
"""

_COLUMNS_SQL = """
SELECT c.table_schema, c.table_name, c.column_name, c.data_type
FROM information_schema.columns c
JOIN information_schema.tables t
  ON c.table_schema = t.table_schema AND c.table_name = t.table_name
WHERE t.table_type = 'BASE TABLE'
  AND c.table_schema NOT IN ('pg_catalog', 'information_schema')
ORDER BY c.table_schema, c.table_name, c.ordinal_position
"""


def _qualify(schema: str, table: str) -> str:
    return table if schema == "public" else f"{schema}.{table}"


class PostgresDatabaseTool(DatabaseTool):
    """Read-only SQL execution wrapper for a tenant's PostgreSQL database."""

    dialect = "postgresql"

    def __init__(self, conninfo: Optional[str], logger, connect_timeout: int = 5):
        self.conninfo = conninfo
        self.logger = logger
        self.connect_timeout = connect_timeout

    def _connect(self) -> psycopg.Connection:
        if not self.conninfo:
            raise ToolError("DATABASE_URL must be set for the postgresql backend")
        try:
            conn = psycopg.connect(self.conninfo, connect_timeout=self.connect_timeout)
        except psycopg.OperationalError as e:
            raise ToolError(f"Could not connect to PostgreSQL: {e}") from e
        conn.read_only = True
        return conn

    def execute(self, sql: str, timeout_seconds: int) -> dict[str, Any]:
        start = time.time()
        timeout_ms = int(timeout_seconds) * 1000
        try:
            with self._connect() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        cur.execute(f"SET LOCAL statement_timeout = {timeout_ms}")
                        cur.execute(sql)
                        columns = [d.name for d in cur.description] if cur.description else []
                        rows = cur.fetchall() if cur.description else []
        except pg_errors.QueryCanceled as e:
            raise QueryTimeoutError(f"Query timed out after {timeout_seconds}s") from e
        except psycopg.Error as e:
            raise ToolError(f"PostgreSQL query failed: {e}") from e
        elapsed_ms = int((time.time() - start) * 1000)
        return {"columns": columns, "rows": [list(r) for r in rows], "elapsed_ms": elapsed_ms}

    def list_tables(self) -> list[str]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(_TABLES_SQL)
                return [_qualify(schema, table) for schema, table in cur.fetchall()]

    def list_columns(self) -> list[tuple[str, str, str]]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(_COLUMNS_SQL)
                return [(_qualify(s, t), col, dtype) for s, t, col, dtype in cur.fetchall()]
