import logging

import pytest

from vista_guard.contracts.models import UNSAFE_QUERY_MESSAGE, RejectReason
from vista_guard.errors import ConfigError
from vista_guard.policy.guard import SqlGuard, get_guardrails, sql_fingerprint

ALLOWED = ["public.orders", "public.customers"]


@pytest.mark.parametrize("sql", ["DROP TABLE x", "select 1; delete from y", "select * from t for update"])
def test_is_select_only_rejects_forbidden(sql):
    assert not SqlGuard().is_select_only(sql)


def test_is_select_only_ignores_identifier_substrings():
    assert SqlGuard().is_select_only("select insertion_date from t")


def test_is_select_only_skips_table_scope():
    assert SqlGuard().is_select_only("select * from anything_at_all")


@pytest.mark.parametrize("sql", ["select 1;", "select 1 ;  ", "select ';'"])
def test_is_select_only_rejects_semicolons(sql):
    assert not SqlGuard().is_select_only(sql)


def test_enforce_limit_examples():
    g = SqlGuard()
    assert g.enforce_limit("select * from t", 500) == "select * from t LIMIT 500"
    assert g.enforce_limit("select * from t limit 10", 500) == "select * from t limit 10"
    assert g.enforce_limit("select * from t;", 500) == "select * from t LIMIT 500"


def test_check_validates_then_limits():
    d = SqlGuard().check("select * from orders", ALLOWED, 100)
    assert d.accepted
    assert d.sql == "select * from orders LIMIT 100"


def test_check_rejection_has_no_sql():
    d = SqlGuard().check("select * from secret", ALLOWED, 100)
    assert not d
    assert d.sql is None
    assert d.reason == RejectReason.TABLE_NOT_ALLOWED
    assert d.user_message == UNSAFE_QUERY_MESSAGE


@pytest.mark.parametrize("sql", [
    "select * from orders",
    "with o as (select * from orders) select * from o",
    "select * from orders limit all",
    "select * from orders limit 2 + 3",
    "select * from customers -- trailing note",
])
def test_limited_sql_still_passes_validation(sql):
    g = SqlGuard()
    d = g.check(sql, ALLOWED, 50)
    assert d.accepted
    assert d.sql.split()[0].lower() in ("select", "with")
    assert g.validate(d.sql, ALLOWED).accepted
    assert g.enforce_limit(d.sql, 50) == d.sql


def test_rejection_is_logged_without_sql(caplog):
    g = SqlGuard(logger=logging.getLogger("test_guard"))
    with caplog.at_level(logging.WARNING, logger="test_guard"):
        g.validate("select secret_column from secret", ALLOWED)
    assert "reason=TABLE_NOT_ALLOWED" in caplog.text
    assert sql_fingerprint("select secret_column from secret") in caplog.text
    assert "secret_column" not in caplog.text


def test_get_guardrails_per_dialect():
    assert get_guardrails("postgres").dialect.name == "postgresql"
    assert get_guardrails("mysql").dialect.name == "mysql"
    assert get_guardrails("SQLite").dialect.name == "sqlite"
    with pytest.raises(ConfigError):
        get_guardrails("oracle")


def test_guard_options_pass_through():
    g = get_guardrails("postgresql", allow_trailing_semicolon=True, existing_limit_policy="clamp")
    d = g.check("select * from orders limit 9000;", ALLOWED, 500)
    assert d.accepted
    assert d.sql == "select * from orders limit 500"


def test_mysql_guard_uses_dialect_quoting():
    g = get_guardrails("mysql")
    d = g.check("select * from `sales`.`orders`", ["sales.orders"], 10)
    assert d.sql == "select * from `sales`.`orders` LIMIT 10"
