"""vista_guard.policy.guard

Per-dialect guard facade used by every caller that runs SQL.

Callers validate first, then enforce the limit (or call `check`, which does
both in that order). The limit step performs no safety checks of its own.
The guard is stateless; one instance may be shared across threads.
"""

from __future__ import annotations
import hashlib
import logging
from typing import Iterable, Optional

from vista_guard.contracts.models import ExistingLimitPolicy, GuardDecision
from vista_guard.policy.dialects import get_dialect_policy
from vista_guard.policy.limits_policy import LimitsPolicy
from vista_guard.policy.sql_policy import SqlPolicy


def sql_fingerprint(sql: Optional[str]) -> str:
    """Short stable hash so logs can correlate a statement without storing it."""
    return hashlib.sha256((sql or "").encode("utf-8")).hexdigest()[:12]


class SqlGuard:
    """Validates SQL and caps its result size for one dialect."""

    def __init__(
        self,
        dialect: str = "postgresql",
        allow_trailing_semicolon: bool = False,
        existing_limit_policy: ExistingLimitPolicy = "preserve",
        logger: Optional[logging.Logger] = None,
    ):
        self.dialect = get_dialect_policy(dialect)
        self.sql_policy = SqlPolicy(self.dialect, allow_trailing_semicolon=allow_trailing_semicolon)
        self.limits = LimitsPolicy(self.dialect, existing_limit_policy=existing_limit_policy)
        self.logger = logger or logging.getLogger(__name__)

    def validate(self, statement: Optional[str], allowed_tables: Optional[Iterable[str]]) -> GuardDecision:
        decision = self.sql_policy.validate(statement, allowed_tables)
        if not decision.accepted:
            self._log_rejection(statement, decision)
        return decision

    def is_select_only(self, statement: Optional[str]) -> bool:
        """Shape check only (no table scope); for callers that cannot afford introspection."""
        return self.sql_policy.check_shape(statement).accepted

    def enforce_limit(self, statement: str, max_rows: int) -> str:
        return self.limits.apply_row_limit(statement, max_rows)

    def check(self, statement: Optional[str], allowed_tables: Optional[Iterable[str]], max_rows: int) -> GuardDecision:
        """Validate, then limit. Accepted decisions carry the executable SQL."""
        decision = self.validate(statement, allowed_tables)
        if not decision.accepted:
            return decision
        return GuardDecision.accept(self.enforce_limit(decision.sql or "", max_rows))

    def _log_rejection(self, statement: Optional[str], decision: GuardDecision) -> None:
        reason = decision.reason.value if decision.reason else "UNKNOWN"
        self.logger.warning(
            f"SQL rejected reason={reason} dialect={self.dialect.name} "
            f"fingerprint={sql_fingerprint(statement)} detail={decision.detail!r}"
        )


def get_guardrails(dialect: str, **options) -> SqlGuard:
    """Build the guard for a connector's dialect. Unknown dialects raise ConfigError."""
    return SqlGuard(dialect, **options)
