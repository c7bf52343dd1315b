"""scripts.check_sql

Runs one statement through the guard and prints the decision.

Usage:
  python scripts/check_sql.py --sql "select * from orders" --table orders --table public.customers
  echo "select 1" | python scripts/check_sql.py --table t --dialect sqlite
  python scripts/check_sql.py --sql "select * from orders" --sqlite data/app.db   # allow-list from the file

Exit code: 0 accepted, 2 rejected.
"""

from __future__ import annotations

import argparse
import logging
import sys

import pandas as pd

from vista_guard.env_loader import load_env
from vista_guard.config import Settings
from vista_guard.policy.dialects import supported_dialects
from vista_guard.policy.guard import SqlGuard
from vista_guard.policy.sql_policy import extract_sql
from vista_guard.tools.db_sqlite_tool import SqliteDatabaseTool


def main() -> int:
    load_env()  # load .env if present
    settings = Settings.load()

    ap = argparse.ArgumentParser(description="Validate SQL against the read-only guard.")
    ap.add_argument("--sql", help="Statement to check (default: read stdin)")
    ap.add_argument("--table", action="append", default=[], help="Allowed table; repeatable")
    ap.add_argument("--dialect", choices=supported_dialects(), default=settings.dialect)
    ap.add_argument("--max-rows", type=int, default=settings.max_rows)
    ap.add_argument("--allow-trailing-semicolon", action="store_true", default=settings.allow_trailing_semicolon)
    ap.add_argument("--clamp", action="store_true", help="Lower explicit limits above --max-rows")
    ap.add_argument("--sqlite", help="Run the accepted query on this SQLite file and print a preview")
    args = ap.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")
    logger = logging.getLogger("vista_guard.check_sql")

    raw = args.sql if args.sql is not None else sys.stdin.read()
    dialect = "sqlite" if args.sqlite else args.dialect
    guard = SqlGuard(
        dialect,
        allow_trailing_semicolon=args.allow_trailing_semicolon,
        existing_limit_policy="clamp" if args.clamp else settings.existing_limit_policy,
        logger=logger,
    )

    tool = SqliteDatabaseTool(args.sqlite, logger=logger) if args.sqlite else None
    tables = args.table or (tool.list_tables() if tool else [])

    decision = guard.check(extract_sql(raw), tables, args.max_rows)
    if not decision.accepted:
        print(f"REJECTED {decision.reason.value if decision.reason else ''}: {decision.detail or ''}".rstrip(": "))
        return 2

    print("ACCEPTED")
    print(decision.sql)

    if tool is not None:
        out = tool.execute(decision.sql or "", timeout_seconds=settings.statement_timeout_seconds)
        df = pd.DataFrame(out["rows"], columns=out["columns"])
        print(df.head(20).to_string(index=False))
        print(f"({len(df)} rows, {out['elapsed_ms']} ms)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
