"""vista_guard.policy.limits_policy

Applies row limits to validated SQL and truncates results for display.

Only a LIMIT/FETCH at the outermost level bounds the result set; one inside a
subquery or CTE does not count.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional, Tuple, List

from vista_guard.contracts.models import ExistingLimitPolicy
from vista_guard.errors import ConfigError
from vista_guard.policy.dialects import DialectPolicy, POSTGRESQL
from vista_guard.policy.lexer import NUMBER, Token, significant_tokens, tokenize
from vista_guard.policy.sql_policy import strip_trailing_semicolons

_EXISTING_LIMIT_POLICIES = ("preserve", "clamp")


@dataclass(frozen=True)
class LimitClause:
    """Outermost LIMIT/FETCH found in a statement.

    kind: "literal" (integer token), "implicit" (FETCH FIRST ROW ONLY),
    "all" (LIMIT ALL) or "expression" (anything we cannot read as a number).
    """
    kind: str
    token: Optional[Token] = None

    @property
    def value(self) -> Optional[int]:
        if self.kind == "literal" and self.token is not None:
            return int(self.token.value)
        if self.kind == "implicit":
            return 1
        return None


def _is_int(tok: Optional[Token]) -> bool:
    return tok is not None and tok.kind == NUMBER and tok.value.isdigit()


def find_limit_clause(tokens: List[Token]) -> Optional[LimitClause]:
    toks = significant_tokens(tokens)
    depth = 0
    found: Optional[LimitClause] = None
    for i, tok in enumerate(toks):
        if tok.is_punct("("):
            depth += 1
        elif tok.is_punct(")"):
            depth = max(0, depth - 1)
        elif depth == 0 and tok.is_word("limit"):
            nxt = toks[i + 1] if i + 1 < len(toks) else None
            if _is_int(nxt):
                # MySQL `LIMIT offset, count`
                if i + 3 < len(toks) and toks[i + 2].is_punct(",") and _is_int(toks[i + 3]):
                    nxt = toks[i + 3]
                found = LimitClause("literal", nxt)
            elif nxt is not None and nxt.is_word("all"):
                found = LimitClause("all", nxt)
            else:
                found = LimitClause("expression")
        elif depth == 0 and tok.is_word("fetch"):
            nxt = toks[i + 1] if i + 1 < len(toks) else None
            if nxt is not None and nxt.is_word("first", "next"):
                count = toks[i + 2] if i + 2 < len(toks) else None
                if _is_int(count):
                    found = LimitClause("literal", count)
                elif count is not None and count.is_word("row", "rows"):
                    found = LimitClause("implicit")
                else:
                    found = LimitClause("expression")
    return found


class LimitsPolicy:
    """Applies row limits and truncation rules."""

    def __init__(self, dialect_policy: DialectPolicy = POSTGRESQL, existing_limit_policy: ExistingLimitPolicy = "preserve"):
        if existing_limit_policy not in _EXISTING_LIMIT_POLICIES:
            raise ConfigError(f"existing_limit_policy must be one of {_EXISTING_LIMIT_POLICIES}, got {existing_limit_policy!r}")
        self.dialect = dialect_policy
        self.existing_limit_policy = existing_limit_policy

    def existing_limit(self, sql: str) -> Optional[int]:
        """The literal outermost row limit, if the statement has one."""
        clause = find_limit_clause(tokenize(strip_trailing_semicolons(sql), self.dialect))
        return clause.value if clause else None

    def apply_row_limit(self, sql: str, max_rows: int) -> str:
        """Ensure the query returns at most `max_rows` rows (never lowers an existing limit unless clamping).

        Assumes `sql` already passed SqlPolicy; this is formatting, not a safety check.
        """
        s = strip_trailing_semicolons(sql)
        if not s:
            return s
        cap = max(1, int(max_rows))
        # Drop trailing comments: anything appended after one (line comment, or a block
        # comment the engine closes at end of input) would be commented out.
        significant = significant_tokens(tokenize(s, self.dialect))
        if significant:
            s = strip_trailing_semicolons(s[:significant[-1].end])
        tokens = tokenize(s, self.dialect)
        clause = find_limit_clause(tokens)

        if clause is None:
            return f"{s} {self.dialect.limit_clause(cap)}"

        if clause.kind == "all" and clause.token is not None:
            return s[:clause.token.start] + str(cap) + s[clause.token.end:]

        if clause.kind == "expression":
            return f"SELECT * FROM (\n{s}\n) AS limited_rows {self.dialect.limit_clause(cap)}"

        if self.existing_limit_policy == "clamp" and clause.kind == "literal" and clause.token is not None:
            if int(clause.token.value) > cap:
                return s[:clause.token.start] + str(cap) + s[clause.token.end:]

        return s

    def truncate_result(self, columns: List[str], rows: List[List[Any]], max_cols: int, max_rows: int) -> Tuple[List[str], List[List[Any]], bool]:
        """Truncate result in-memory for UI safety."""
        truncated = False

        if len(columns) > max_cols:
            columns = columns[:max_cols]
            rows = [r[:max_cols] for r in rows]
            truncated = True

        if len(rows) > max_rows:
            rows = rows[:max_rows]
            truncated = True

        return columns, rows, truncated
