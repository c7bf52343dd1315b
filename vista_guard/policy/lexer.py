"""vista_guard.policy.lexer

Minimal SQL tokenizer and forbidden-verb classifier.

Keywords are matched against unquoted word tokens only. A verb inside a string
literal, a comment or a quoted identifier never counts, and neither does a verb
that is part of a longer identifier (`insertion_date`).

The tokenizer knows just enough of each dialect's lexical rules to find where
literals and comments start and end; it does not parse.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from vista_guard.policy.dialects import DialectPolicy, POSTGRESQL

WHITESPACE = "whitespace"
COMMENT = "comment"
STRING = "string"
QUOTED_IDENT = "quoted_ident"
NUMBER = "number"
WORD = "word"
PARAM = "param"
PUNCT = "punct"
OPERATOR = "operator"

_PUNCT_CHARS = "(),;."

_WS_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[^\W\d][\w$]*")
_NUMBER_RE = re.compile(r"(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_DOLLAR_TAG_RE = re.compile(r"\$(?:[^\W\d]\w*)?\$")
_POSITIONAL_PARAM_RE = re.compile(r"\$\d+")
_MYSQL_VERSION_RE = re.compile(r"\d{5,6}")
_EXECUTABLE_COMMENT_RE = re.compile(r"/\*M?!")


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    start: int
    end: int

    @property
    def lower(self) -> str:
        return self.value.lower()

    def is_word(self, *words: str) -> bool:
        return self.kind == WORD and self.value.lower() in words

    def is_punct(self, ch: str) -> bool:
        return self.kind == PUNCT and self.value == ch


class SqlLexer:
    """Splits SQL text into tokens with source offsets."""

    def __init__(self, dialect_policy: DialectPolicy = POSTGRESQL):
        self.dialect = dialect_policy

    def tokenize(self, sql: str) -> list[Token]:
        text = sql or ""
        out: list[Token] = []
        self._scan(text, 0, len(text), out)
        return out

    def _scan(self, sql: str, pos: int, end: int, out: list[Token]) -> None:
        d = self.dialect
        while pos < end:
            ch = sql[pos]
            nxt = sql[pos + 1] if pos + 1 < end else ""

            if ch.isspace():
                m = _WS_RE.match(sql, pos, end)
                stop = m.end() if m else pos + 1
                out.append(Token(WHITESPACE, sql[pos:stop], pos, stop))
                pos = stop
                continue

            if (ch == "-" and nxt == "-" and self._dash_comment_at(sql, pos, end)) or (ch == "#" and d.hash_comments):
                stop = sql.find("\n", pos, end)
                stop = end if stop == -1 else stop
                out.append(Token(COMMENT, sql[pos:stop], pos, stop))
                pos = stop
                continue

            if ch == "/" and nxt == "*":
                opener = _EXECUTABLE_COMMENT_RE.match(sql, pos, end) if d.executable_comments else None
                if opener:
                    # MySQL runs the body of /*! ... */ (MariaDB also /*M! ... */), so scan it as code.
                    body_start = opener.end()
                    close = sql.find("*/", body_start, end)
                    body_end = end if close == -1 else close
                    m = _MYSQL_VERSION_RE.match(sql, body_start, body_end)
                    if m:
                        body_start = m.end()
                    self._scan(sql, body_start, body_end, out)
                    pos = end if close == -1 else close + 2
                    continue
                stop = self._block_comment_end(sql, pos, end)
                out.append(Token(COMMENT, sql[pos:stop], pos, stop))
                pos = stop
                continue

            if ch in "eE" and nxt == "'" and d.escape_strings:
                stop = self._quoted_end(sql, pos + 1, end, "'", backslash=True)
                out.append(Token(STRING, sql[pos:stop], pos, stop))
                pos = stop
                continue

            if ch == "'":
                stop = self._quoted_end(sql, pos, end, "'", backslash=d.backslash_escapes)
                out.append(Token(STRING, sql[pos:stop], pos, stop))
                pos = stop
                continue

            if ch == '"':
                if d.double_quote_strings:
                    stop = self._quoted_end(sql, pos, end, '"', backslash=d.backslash_escapes)
                    out.append(Token(STRING, sql[pos:stop], pos, stop))
                else:
                    stop = self._quoted_end(sql, pos, end, '"', backslash=False)
                    out.append(Token(QUOTED_IDENT, sql[pos:stop], pos, stop))
                pos = stop
                continue

            if ch == "`" and d.backtick_identifiers:
                stop = self._quoted_end(sql, pos, end, "`", backslash=False)
                out.append(Token(QUOTED_IDENT, sql[pos:stop], pos, stop))
                pos = stop
                continue

            if ch == "[" and d.bracket_identifiers:
                close = sql.find("]", pos + 1, end)
                stop = end if close == -1 else close + 1
                out.append(Token(QUOTED_IDENT, sql[pos:stop], pos, stop))
                pos = stop
                continue

            if ch == "$":
                if d.dollar_quoting:
                    m = _DOLLAR_TAG_RE.match(sql, pos, end)
                    if m:
                        tag = m.group()
                        close = sql.find(tag, m.end(), end)
                        stop = end if close == -1 else close + len(tag)
                        out.append(Token(STRING, sql[pos:stop], pos, stop))
                        pos = stop
                        continue
                m = _POSITIONAL_PARAM_RE.match(sql, pos, end)
                if m:
                    out.append(Token(PARAM, m.group(), pos, m.end()))
                    pos = m.end()
                    continue

            if ch == "?":
                out.append(Token(PARAM, ch, pos, pos + 1))
                pos += 1
                continue

            if ch.isdigit() or (ch == "." and nxt.isdigit()):
                m = _NUMBER_RE.match(sql, pos, end)
                if m:
                    out.append(Token(NUMBER, m.group(), pos, m.end()))
                    pos = m.end()
                    continue

            m = _WORD_RE.match(sql, pos, end)
            if m:
                out.append(Token(WORD, m.group(), pos, m.end()))
                pos = m.end()
                continue

            kind = PUNCT if ch in _PUNCT_CHARS else OPERATOR
            out.append(Token(kind, ch, pos, pos + 1))
            pos += 1

    def _dash_comment_at(self, sql: str, pos: int, end: int) -> bool:
        """`--` at pos opens a comment; MySQL needs whitespace or a control char after it (`1--1` is 1 - -1)."""
        if not self.dialect.dash_comment_needs_space:
            return True
        return pos + 2 >= end or sql[pos + 2] <= " "

    @staticmethod
    def _quoted_end(sql: str, pos: int, end: int, quote: str, backslash: bool) -> int:
        """Index just past the closing quote; a doubled quote is an escaped quote."""
        i = pos + 1
        while i < end:
            c = sql[i]
            if backslash and c == "\\":
                i += 2
                continue
            if c == quote:
                if i + 1 < end and sql[i + 1] == quote:
                    i += 2
                    continue
                return i + 1
            i += 1
        return end

    def _block_comment_end(self, sql: str, pos: int, end: int) -> int:
        depth = 1
        i = pos + 2
        while i < end:
            if self.dialect.nested_comments and sql.startswith("/*", i):
                depth += 1
                i += 2
            elif sql.startswith("*/", i):
                depth -= 1
                i += 2
                if depth == 0:
                    return i
            else:
                i += 1
        return end


def tokenize(sql: str, dialect_policy: Optional[DialectPolicy] = None) -> list[Token]:
    return SqlLexer(dialect_policy or POSTGRESQL).tokenize(sql)


def significant_tokens(tokens: Iterable[Token]) -> list[Token]:
    """Drop whitespace and comments."""
    return [t for t in tokens if t.kind not in (WHITESPACE, COMMENT)]


def first_forbidden_word(tokens: Iterable[Token], dialect_policy: DialectPolicy) -> Optional[str]:
    blocked = dialect_policy.blocked_words
    for tok in tokens:
        if tok.kind == WORD and tok.lower in blocked:
            return tok.lower
    return None


def find_forbidden_keyword(sql: str, dialect_policy: Optional[DialectPolicy] = None) -> Optional[str]:
    """Return the first forbidden verb or denied function used as a bare word, else None."""
    policy = dialect_policy or POSTGRESQL
    return first_forbidden_word(tokenize(sql, policy), policy)


def contains_forbidden_keyword(sql: str, dialect_policy: Optional[DialectPolicy] = None) -> bool:
    return find_forbidden_keyword(sql, dialect_policy) is not None
