"""vista_guard.agents.db_executor

Executes guard-accepted SQL on the data source and truncates for display.
Never retries: a failed statement goes back to the caller, and any new attempt
must pass the guard again.
"""

from __future__ import annotations
from vista_guard.contracts.agent_base import BaseAgent, QueryContext
from vista_guard.contracts.models import QueryResult
from vista_guard.errors import UnsafeSQLError


class DBExecutorAgent(BaseAgent[QueryResult]):
    name = "db_executor"

    def __init__(self, db_tool, limits_policy, tracer, logger):
        self.db = db_tool
        self.limits = limits_policy
        self.tracer = tracer
        self.logger = logger

    def run(self, ctx: QueryContext) -> QueryResult:
        if not ctx.safety or not ctx.safety.is_safe:
            raise UnsafeSQLError("Attempted to execute SQL the guard did not accept")

        sql = ctx.safety.safe_sql
        if not sql:
            raise UnsafeSQLError("No guarded SQL to execute")

        req = ctx.request
        out = self.db.execute(sql, timeout_seconds=req.timeout_seconds)
        cols = list(out.get("columns", []))
        rows = list(out.get("rows", []))
        elapsed = int(out.get("elapsed_ms", 0))

        cols, rows, truncated = self.limits.truncate_result(cols, rows, req.max_cols, req.max_rows)

        res = QueryResult(
            columns=cols,
            rows=rows,
            row_count_returned=len(rows),
            truncated=bool(truncated),
            elapsed_ms=elapsed,
        )
        self.tracer.add(self.name, {"row_count": res.row_count_returned, "elapsed_ms": elapsed, "truncated": truncated})
        return res
