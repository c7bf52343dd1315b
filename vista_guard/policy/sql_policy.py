"""vista_guard.policy.sql_policy

Read-only statement shape validation and table allow-list enforcement.

Rules, applied in order (first failure wins):
1. non-empty
2. first token is SELECT or WITH
3. no semicolon anywhere (no statement stacking)
4. no forbidden verb / denied function as a bare word
5. every table read in a FROM list or JOIN resolves to the allow-list
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from vista_guard.contracts.models import GuardDecision, RejectReason
from vista_guard.policy.dialects import DialectPolicy, POSTGRESQL
from vista_guard.policy.lexer import (
    QUOTED_IDENT,
    STRING,
    WHITESPACE,
    WORD,
    Token,
    first_forbidden_word,
    significant_tokens,
    tokenize,
)

_TRAILING_SEMICOLONS_RE = re.compile(r"[;\s]+$")
_FENCED_RE = re.compile(r"```[ \t]*(?:sql)?[ \t]*\n?(.*?)```", re.IGNORECASE | re.DOTALL)
_OPEN_FENCE_RE = re.compile(r"^```[ \t]*(?:sql)?[ \t]*\n?", re.IGNORECASE)

# Words that end a FROM list at the same nesting level.
_FROM_LIST_END = frozenset({
    "where", "group", "having", "order", "limit", "offset", "fetch",
    "union", "intersect", "except", "window", "for", "qualify", "returning",
})
_TABLE_PREFIXES = frozenset({"lateral", "only"})
_SUBQUERY_STARTS = frozenset({"select", "with", "values"})
_JOIN_WORDS = frozenset({"join", "straight_join"})
# `TABLE t` is shorthand for SELECT * FROM t after these.
_TABLE_COMMAND_AFTER = frozenset({"union", "intersect", "except", "all", "distinct"})


def extract_sql(text: str) -> str:
    """Pull SQL out of an LLM reply, dropping markdown code fences."""
    if not text:
        return ""
    m = _FENCED_RE.search(text)
    if m:
        return m.group(1).strip()
    return _OPEN_FENCE_RE.sub("", text.strip()).strip()


def strip_trailing_semicolons(sql: str) -> str:
    return _TRAILING_SEMICOLONS_RE.sub("", (sql or "").strip())


def _is_name(tok: Token) -> bool:
    # A double-quoted STRING is still a name in MySQL ANSI_QUOTES mode; treat it as one.
    return tok.kind in (WORD, QUOTED_IDENT) or (tok.kind == STRING and tok.value.startswith('"'))


def normalize_identifier(tok: Token) -> str:
    """Unquote, unescape and lower-case one identifier token."""
    value = tok.value
    if tok.kind in (QUOTED_IDENT, STRING) and value:
        opening = value[0]
        closing = "]" if opening == "[" else opening
        body = value[1:]
        if body.endswith(closing):
            body = body[:-1]
        if opening != "[":
            body = body.replace(closing * 2, closing)
        return body.lower()
    return value.lower()


def parse_qualified_name(text: str, dialect_policy: DialectPolicy = POSTGRESQL) -> tuple[str, ...]:
    """`"Public"."Orders"` -> ("public", "orders")."""
    toks = significant_tokens(tokenize(text, dialect_policy))
    return tuple(normalize_identifier(t) for t in toks if _is_name(t))


@dataclass(frozen=True)
class TableReference:
    """A table named in a FROM list or JOIN."""
    parts: tuple[str, ...]
    raw: str

    @property
    def name(self) -> str:
        return self.parts[-1] if self.parts else ""

    @property
    def qualified(self) -> bool:
        return len(self.parts) > 1

    def __str__(self) -> str:
        return ".".join(self.parts) if self.parts else self.raw


@dataclass
class _Scope:
    """State for one parenthesis level."""
    has_select: bool = False
    in_from: bool = False
    in_with: bool = False
    recursive: bool = False
    ctes: set[str] = field(default_factory=set)
    defines: Optional[str] = None  # CTE name this body paren defines once it closes


class _StatementWalker:
    """Single pass over significant tokens collecting table references and CTE names."""

    def __init__(self, tokens: list[Token], sql: str):
        self.toks = tokens
        self.sql = sql
        self.references: list[TableReference] = []
        self.cte_names: set[str] = set()

    def walk(self) -> "_StatementWalker":
        toks = self.toks
        stack = [_Scope()]
        table_positions: set[int] = set()
        cte_bodies: dict[int, str] = {}
        i = 0
        while i < len(toks):
            tok = toks[i]
            scope = stack[-1]
            prev = toks[i - 1] if i > 0 else None

            if i in table_positions:
                if tok.is_punct("("):
                    # Subquery or parenthesised join: what follows the paren is a table position too.
                    stack.append(_Scope(in_from=True))
                    table_positions.add(i + 1)
                    i += 1
                    continue
                if tok.kind == WORD and tok.lower in _TABLE_PREFIXES:
                    table_positions.add(i + 1)
                    i += 1
                    continue
                if not (tok.kind == WORD and tok.lower in _SUBQUERY_STARTS):
                    i = self._read_reference(i, stack)
                    continue

            if tok.is_punct("("):
                stack.append(_Scope(defines=cte_bodies.pop(i, None)))
            elif tok.is_punct(")"):
                if len(stack) > 1:
                    closed = stack.pop()
                    if closed.defines:
                        stack[-1].ctes.add(closed.defines)
            elif tok.is_punct(","):
                if scope.in_from:
                    table_positions.add(i + 1)
            elif tok.kind == WORD:
                word = tok.lower
                if word == "select":
                    scope.has_select = True
                    scope.in_from = False
                    scope.in_with = False
                elif word == "values":
                    scope.in_from = False
                elif word == "with":
                    scope.in_with = True
                elif word == "recursive" and prev is not None and prev.is_word("with"):
                    scope.recursive = True
                elif word == "from":
                    if scope.has_select and not (prev is not None and prev.is_word("distinct")):
                        scope.in_from = True
                        table_positions.add(i + 1)
                elif word in _JOIN_WORDS:
                    scope.in_from = True
                    table_positions.add(i + 1)
                elif word == "table" and prev is not None and (
                    prev.is_punct("(") or (prev.kind == WORD and prev.lower in _TABLE_COMMAND_AFTER)
                ):
                    table_positions.add(i + 1)
                elif word in _FROM_LIST_END:
                    scope.in_from = False

            if scope.in_with and _is_name(tok) and prev is not None and (
                prev.is_word("with", "recursive") or prev.is_punct(",")
            ):
                body = self._cte_body_start(i)
                if body is not None:
                    name = normalize_identifier(tok)
                    self.cte_names.add(name)
                    if scope.recursive:
                        scope.ctes.add(name)
                    else:
                        cte_bodies[body] = name
            i += 1
        return self

    def _cte_body_start(self, i: int) -> Optional[int]:
        """Index of the `(` opening the CTE body if toks[i] starts `name [(cols)] AS [NOT] [MATERIALIZED] (`."""
        toks = self.toks
        j = i + 1
        if j < len(toks) and toks[j].is_punct("("):
            depth = 0
            while j < len(toks):
                if toks[j].is_punct("("):
                    depth += 1
                elif toks[j].is_punct(")"):
                    depth -= 1
                    if depth == 0:
                        break
                j += 1
            j += 1
        if j >= len(toks) or not toks[j].is_word("as"):
            return None
        j += 1
        while j < len(toks) and toks[j].is_word("not", "materialized"):
            j += 1
        if j < len(toks) and toks[j].is_punct("("):
            return j
        return None

    def _read_reference(self, i: int, stack: list[_Scope]) -> int:
        """Record the table named at toks[i]; return the index to continue from."""
        toks = self.toks
        tok = toks[i]
        if not _is_name(tok):
            # Anything else in a table position cannot be proven safe.
            self.references.append(TableReference(parts=(), raw=tok.value))
            return i + 1
        parts = [normalize_identifier(tok)]
        j = i + 1
        while j + 1 < len(toks) and toks[j].is_punct(".") and _is_name(toks[j + 1]):
            parts.append(normalize_identifier(toks[j + 1]))
            j += 2
        if j < len(toks) and toks[j].is_punct("("):
            # Table function such as generate_series(...); denied functions are caught lexically.
            return j
        raw = self.sql[tok.start:toks[j - 1].end]
        if len(parts) == 1 and any(parts[0] in s.ctes for s in stack):
            return j
        self.references.append(TableReference(parts=tuple(parts), raw=raw))
        return j


def extract_table_references(sql: str, dialect_policy: DialectPolicy = POSTGRESQL) -> list[TableReference]:
    """Tables read by the statement, excluding references to its own CTEs."""
    toks = significant_tokens(tokenize(sql, dialect_policy))
    return _StatementWalker(toks, sql).walk().references


def extract_cte_names(sql: str, dialect_policy: DialectPolicy = POSTGRESQL) -> set[str]:
    toks = significant_tokens(tokenize(sql, dialect_policy))
    return _StatementWalker(toks, sql).walk().cte_names


class SqlPolicy:
    """Validates that SQL is a single read-only query over allowed tables."""

    def __init__(self, dialect_policy: DialectPolicy = POSTGRESQL, allow_trailing_semicolon: bool = False):
        self.dialect = dialect_policy
        self.allow_trailing_semicolon = allow_trailing_semicolon

    def check_shape(self, sql: Optional[str]) -> GuardDecision:
        """Rules 1-4. Accepted decisions carry the trimmed statement."""
        s = (sql or "").strip()
        if self.allow_trailing_semicolon:
            s = strip_trailing_semicolons(s)
        if not s:
            return GuardDecision.reject(RejectReason.EMPTY)

        tokens = tokenize(s, self.dialect)
        first = next(t for t in tokens if t.kind != WHITESPACE)
        if not first.is_word("select", "with"):
            return GuardDecision.reject(RejectReason.NOT_SELECT, first.value[:32])

        if ";" in s:
            return GuardDecision.reject(RejectReason.MULTI_STATEMENT)

        keyword = first_forbidden_word(tokens, self.dialect)
        if keyword:
            return GuardDecision.reject(RejectReason.FORBIDDEN_KEYWORD, keyword)

        return GuardDecision.accept(s)

    def allowed_table_keys(self, allowed_tables: Optional[Iterable[str]]) -> set[tuple[str, ...]]:
        keys: set[tuple[str, ...]] = set()
        for entry in allowed_tables or ():
            parts = parse_qualified_name(entry, self.dialect)
            if parts:
                keys.add(parts)
        return keys

    def is_table_allowed(self, ref: TableReference, allowed: set[tuple[str, ...]]) -> bool:
        if not ref.parts:
            return False
        if ref.parts in allowed:
            return True
        schema = self.dialect.default_schema
        if schema:
            if len(ref.parts) == 1 and (schema, ref.parts[0]) in allowed:
                return True
            if len(ref.parts) == 2 and ref.parts[0] == schema and (ref.parts[1],) in allowed:
                return True
        return False

    def validate(self, sql: Optional[str], allowed_tables: Optional[Iterable[str]]) -> GuardDecision:
        """Return an accepted decision or the first rule that failed."""
        decision = self.check_shape(sql)
        if not decision.accepted:
            return decision

        allowed = self.allowed_table_keys(allowed_tables)
        if not allowed:
            return GuardDecision.reject(RejectReason.TABLE_NOT_ALLOWED, "empty allow-list")

        for ref in extract_table_references(decision.sql or "", self.dialect):
            if not self.is_table_allowed(ref, allowed):
                return GuardDecision.reject(RejectReason.TABLE_NOT_ALLOWED, ref.raw)

        return decision
