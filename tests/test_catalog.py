import logging

from vista_guard.cache import TTLCache
from vista_guard.contracts.tool_base import DatabaseTool
from vista_guard.schema.catalog import SchemaCatalog


class FakeTool(DatabaseTool):
    dialect = "postgresql"

    def __init__(self, tables):
        self.tables = tables
        self.list_calls = 0

    def execute(self, sql, timeout_seconds):
        raise AssertionError("catalog must not execute queries")

    def list_tables(self):
        self.list_calls += 1
        return list(self.tables)

    def list_columns(self):
        return [("orders", "id", "integer"), ("orders", "total", "numeric"), ("sales.leads", "email", "text")]


class FakeClock:
    now = 0.0

    def __call__(self):
        return self.now


def make_catalog(clock=None):
    return SchemaCatalog(TTLCache(300, clock=clock or FakeClock()), logging.getLogger("test_catalog"))


def test_allowed_tables_without_scope_is_everything():
    tool = FakeTool(["orders", "sales.leads"])
    assert make_catalog().allowed_tables("src1", tool) == ["orders", "sales.leads"]


def test_scope_narrows_and_normalizes():
    tool = FakeTool(["orders", "customers", "sales.leads"])
    cat = make_catalog()
    assert cat.allowed_tables("src1", tool, ["public.Orders", '"sales"."leads"']) == ["orders", "sales.leads"]


def test_scope_cannot_add_undiscovered_tables():
    tool = FakeTool(["orders"])
    assert make_catalog().allowed_tables("src1", tool, ["orders", "pg_catalog.pg_authid"]) == ["orders"]


def test_empty_scope_allows_nothing():
    tool = FakeTool(["orders"])
    assert make_catalog().allowed_tables("src1", tool, []) == []


def test_tables_are_cached_per_source_until_refresh():
    clock = FakeClock()
    tool = FakeTool(["orders"])
    cat = make_catalog(clock)
    cat.allowed_tables("src1", tool)
    cat.allowed_tables("src1", tool)
    assert tool.list_calls == 1

    tool.tables = ["orders", "customers"]
    cat.refresh("src1")
    assert cat.allowed_tables("src1", tool) == ["orders", "customers"]
    assert tool.list_calls == 2

    clock.now += 301
    cat.allowed_tables("src1", tool)
    assert tool.list_calls == 3


def test_schema_ddl_filters_by_allowed_tables():
    tool = FakeTool(["orders", "sales.leads"])
    cat = make_catalog()
    assert cat.schema_ddl("src1", tool, ["public.orders"]) == "orders.id integer\norders.total numeric"
    assert "sales.leads.email text" in cat.schema_ddl("src1", tool)
