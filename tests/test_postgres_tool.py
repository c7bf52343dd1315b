import logging

import psycopg
import pytest
from psycopg import errors as pg_errors

from vista_guard.errors import QueryTimeoutError, ToolError
from vista_guard.tools.db_postgres_tool import PostgresDatabaseTool, _qualify


def test_public_schema_is_left_unqualified():
    assert _qualify("public", "orders") == "orders"
    assert _qualify("sales", "leads") == "sales.leads"


def test_missing_database_url():
    tool = PostgresDatabaseTool(None, logger=logging.getLogger("test_pg"))
    assert tool.dialect == "postgresql"
    with pytest.raises(ToolError):
        tool.execute("select 1", timeout_seconds=1)


class FakeColumn:
    def __init__(self, name):
        self.name = name


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.description = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql):
        self.conn.executed.append(sql)
        if self.conn.fail_with is not None and not sql.startswith("SET LOCAL"):
            raise self.conn.fail_with
        self.description = [FakeColumn("id"), FakeColumn("total")]

    def fetchall(self):
        return [(1, 9.5), (2, 3.0)]


class FakeTransaction:
    def __init__(self, conn):
        self.conn = conn

    def __enter__(self):
        self.conn.in_transaction = True
        return self

    def __exit__(self, *exc):
        self.conn.in_transaction = False
        return False


class FakeConnection:
    def __init__(self, fail_with=None):
        self.read_only = False
        self.in_transaction = False
        self.executed = []
        self.fail_with = fail_with

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def transaction(self):
        return FakeTransaction(self)

    def cursor(self):
        assert self.in_transaction
        return FakeCursor(self)


def fake_connect(monkeypatch, conn):
    seen = {}

    def connect(conninfo, connect_timeout):
        seen["conninfo"] = conninfo
        seen["connect_timeout"] = connect_timeout
        return conn

    monkeypatch.setattr(psycopg, "connect", connect)
    return seen


def test_execute_is_read_only_with_statement_timeout(monkeypatch):
    conn = FakeConnection()
    seen = fake_connect(monkeypatch, conn)
    tool = PostgresDatabaseTool("postgresql://ro@db/app", logger=logging.getLogger("test_pg"), connect_timeout=3)

    out = tool.execute("select id, total from orders LIMIT 5", timeout_seconds=10)

    assert seen == {"conninfo": "postgresql://ro@db/app", "connect_timeout": 3}
    assert conn.read_only is True
    assert conn.executed == ["SET LOCAL statement_timeout = 10000", "select id, total from orders LIMIT 5"]
    assert out["columns"] == ["id", "total"]
    assert out["rows"] == [[1, 9.5], [2, 3.0]]


def test_query_canceled_maps_to_timeout(monkeypatch):
    fake_connect(monkeypatch, FakeConnection(fail_with=pg_errors.QueryCanceled("canceling statement due to statement timeout")))
    tool = PostgresDatabaseTool("postgresql://ro@db/app", logger=logging.getLogger("test_pg"))
    with pytest.raises(QueryTimeoutError):
        tool.execute("select pg_catalog.now()", timeout_seconds=1)


def test_other_database_errors_map_to_tool_error(monkeypatch):
    fake_connect(monkeypatch, FakeConnection(fail_with=pg_errors.UndefinedColumn("column \"nope\" does not exist")))
    tool = PostgresDatabaseTool("postgresql://ro@db/app", logger=logging.getLogger("test_pg"))
    with pytest.raises(ToolError) as info:
        tool.execute("select nope from orders", timeout_seconds=1)
    assert not isinstance(info.value, QueryTimeoutError)


def test_connection_failure_is_a_tool_error(monkeypatch):
    def connect(conninfo, connect_timeout):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(psycopg, "connect", connect)
    tool = PostgresDatabaseTool("postgresql://ro@db/app", logger=logging.getLogger("test_pg"))
    with pytest.raises(ToolError):
        tool.list_tables()
