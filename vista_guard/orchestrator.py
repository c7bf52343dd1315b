"""vista_guard.orchestrator

Runs one query request through the guard and, only if accepted, the executor.

The ad-hoc query API, scheduled reports and alerts all go through here, so no
SQL reaches a database without a fresh guard decision. Decisions are never
cached: the allow-list can change between two runs for the same tenant.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from vista_guard.contracts.agent_base import QueryContext
from vista_guard.contracts.models import QueryRequest, QueryResponse
from vista_guard.errors import QueryTimeoutError, ToolError


@dataclass
class QueryRunner:
    sql_safety: Any  # SQLSafetyGuardAgent
    db_executor: Any  # DBExecutorAgent
    tracer: Any
    logger: Any

    def run(self, req: QueryRequest) -> QueryResponse:
        ctx = QueryContext(request=req)

        # 1) Guard
        ctx.safety = self.sql_safety.run(ctx)
        if not ctx.safety.is_safe:
            decision = ctx.safety.decision
            return QueryResponse(
                status="blocked",
                message=decision.user_message or "",
                reason=decision.reason,
                traces=self.tracer.drain(),
            )

        # 2) Execute (no retry)
        try:
            ctx.query_result = self.db_executor.run(ctx)
        except QueryTimeoutError as e:
            ctx.last_error = str(e)
            self.logger.warning(f"Query timed out source={req.source_key} after {req.timeout_seconds}s")
            return QueryResponse(
                status="timeout",
                message=f"Query timed out after {req.timeout_seconds}s",
                sql=ctx.safety.safe_sql,
                traces=self.tracer.drain(),
            )
        except ToolError as e:
            ctx.last_error = str(e)
            self.logger.error(f"Query failed source={req.source_key}: {e}")
            return QueryResponse(
                status="error",
                message="Query failed",
                sql=ctx.safety.safe_sql,
                traces=self.tracer.drain(),
            )

        res = ctx.query_result
        note = " (truncated)" if res.truncated else ""
        return QueryResponse(
            status="ok",
            message=f"{res.row_count_returned} rows in {res.elapsed_ms} ms{note}",
            sql=ctx.safety.safe_sql,
            result=res,
            traces=self.tracer.drain(),
        )
