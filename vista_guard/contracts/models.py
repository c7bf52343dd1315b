"""vista_guard.contracts.models

Shared models for the guard, the execution pipeline, and tools.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

import pandas as pd

Dialect = Literal["postgresql", "mysql", "sqlite"]
ExistingLimitPolicy = Literal["preserve", "clamp"]

UNSAFE_QUERY_MESSAGE = "We could not run this query safely. Please rephrase it as a read-only question."


class RejectReason(str, Enum):
    """Why the guard refused a statement."""
    EMPTY = "EMPTY"
    NOT_SELECT = "NOT_SELECT"
    MULTI_STATEMENT = "MULTI_STATEMENT"
    FORBIDDEN_KEYWORD = "FORBIDDEN_KEYWORD"
    TABLE_NOT_ALLOWED = "TABLE_NOT_ALLOWED"


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of validating one candidate statement.

    `detail` is an internal diagnostic (keyword or table name) meant for logs.
    Never show it, or the rejected SQL, to end users; use `user_message`.
    """
    accepted: bool
    sql: Optional[str] = None
    reason: Optional[RejectReason] = None
    detail: Optional[str] = None

    @classmethod
    def accept(cls, sql: str) -> "GuardDecision":
        return cls(accepted=True, sql=sql)

    @classmethod
    def reject(cls, reason: RejectReason, detail: Optional[str] = None) -> "GuardDecision":
        return cls(accepted=False, reason=reason, detail=detail)

    @property
    def user_message(self) -> Optional[str]:
        return None if self.accepted else UNSAFE_QUERY_MESSAGE

    def __bool__(self) -> bool:
        return self.accepted


@dataclass
class QueryRequest:
    """A statement to run against one tenant data source.

    The dialect comes from the data source's connection, not the request.
    """
    source_key: str
    sql: str
    max_rows: int
    scope: Optional[list[str]] = None  # tables the tenant selected for this source
    max_cols: int = 20
    timeout_seconds: int = 10


@dataclass
class SafetyReport:
    """Guard decision plus the SQL that may be executed."""
    decision: GuardDecision
    safe_sql: Optional[str]
    allowed_tables: list[str]

    @property
    def is_safe(self) -> bool:
        return self.decision.accepted


@dataclass
class QueryResult:
    """Limited preview of query results."""
    columns: list[str]
    rows: list[list[Any]]
    row_count_returned: int
    truncated: bool
    elapsed_ms: int

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=self.columns)


@dataclass
class StepTrace:
    """A single step trace for debug mode."""
    step_name: str
    payload: dict[str, Any]


@dataclass
class QueryResponse:
    """Final response from the query runner."""
    status: Literal["ok", "blocked", "timeout", "error"]
    message: str
    sql: Optional[str] = None
    result: Optional[QueryResult] = None
    reason: Optional[RejectReason] = None
    traces: list[StepTrace] = field(default_factory=list)
