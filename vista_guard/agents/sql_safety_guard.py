"""vista_guard.agents.sql_safety_guard

Resolves the tenant's allowed tables, validates the candidate SQL and applies
the row limit.
"""

from __future__ import annotations
from typing import Any, Optional

from vista_guard.contracts.agent_base import BaseAgent, QueryContext
from vista_guard.contracts.models import SafetyReport
from vista_guard.policy.guard import get_guardrails
from vista_guard.policy.sql_policy import extract_sql


class SQLSafetyGuardAgent(BaseAgent[SafetyReport]):
    name = "sql_safety_guard"

    def __init__(self, catalog, db_tool, tracer, logger, guard_options: Optional[dict[str, Any]] = None):
        self.catalog = catalog
        self.db_tool = db_tool
        self.tracer = tracer
        self.logger = logger
        # The connection decides the dialect; options only tune policy.
        self.guard = get_guardrails(db_tool.dialect, logger=logger, **(guard_options or {}))

    def run(self, ctx: QueryContext) -> SafetyReport:
        req = ctx.request
        allowed = self.catalog.allowed_tables(req.source_key, self.db_tool, req.scope)
        decision = self.guard.check(extract_sql(req.sql), allowed, req.max_rows)

        if not decision.accepted:
            reason = decision.reason.value if decision.reason else None
            self.tracer.add(self.name, {"is_safe": False, "reason": reason, "allowed_tables": len(allowed)})
            return SafetyReport(decision=decision, safe_sql=None, allowed_tables=allowed)

        self.tracer.add(self.name, {"is_safe": True, "allowed_tables": len(allowed)})
        return SafetyReport(decision=decision, safe_sql=decision.sql, allowed_tables=allowed)
