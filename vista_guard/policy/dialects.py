"""vista_guard.policy.dialects

Per-engine policy: which verbs and functions are forbidden, how the engine
quotes strings/identifiers and writes comments, and how a row limit is spelled.

Only PostgreSQL is fully tuned. MySQL and SQLite share the same LIMIT syntax
and most of the vocabulary; they differ in quoting rules and a few extras.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from vista_guard.contracts.models import Dialect
from vista_guard.errors import ConfigError


# Data/schema mutation, permissions, session/config, procedural and bulk I/O verbs.
# `into` covers SELECT ... INTO new_table (PostgreSQL) and INTO OUTFILE (MySQL).
BASE_FORBIDDEN_KEYWORDS = frozenset({
    "insert", "update", "delete", "merge",
    "create", "alter", "drop", "truncate",
    "grant", "revoke",
    "set", "reset", "show", "listen", "unlisten", "notify",
    "call", "execute",
    "copy", "vacuum", "analyze", "explain",
    "into",
})


@dataclass(frozen=True)
class DialectPolicy:
    """Keyword lists, lexical rules and limit syntax for one SQL engine."""

    name: Dialect
    forbidden_keywords: frozenset[str]
    denied_functions: frozenset[str] = frozenset()
    default_schema: Optional[str] = None
    limit_template: str = "LIMIT {n}"

    # Lexical switches
    backslash_escapes: bool = False      # 'it\'s' is one string
    escape_strings: bool = False         # E'...' uses backslash escapes
    double_quote_strings: bool = False   # "abc" is a string, not an identifier
    backtick_identifiers: bool = False
    bracket_identifiers: bool = False
    dollar_quoting: bool = False         # $tag$ ... $tag$
    hash_comments: bool = False          # # to end of line
    dash_comment_needs_space: bool = False  # `--` opens a comment only before whitespace
    nested_comments: bool = False        # /* /* */ */
    executable_comments: bool = False    # /*! ... */ (and MariaDB /*M! ... */) runs as code

    @property
    def blocked_words(self) -> frozenset[str]:
        return self.forbidden_keywords | self.denied_functions

    def limit_clause(self, n: int) -> str:
        return self.limit_template.format(n=n)


POSTGRESQL = DialectPolicy(
    name="postgresql",
    forbidden_keywords=BASE_FORBIDDEN_KEYWORDS | {
        "do", "lock", "refresh", "discard", "prepare", "deallocate", "checkpoint", "reindex",
    },
    denied_functions=frozenset({
        "pg_sleep", "pg_sleep_for", "pg_sleep_until",
        "pg_terminate_backend", "pg_cancel_backend", "pg_reload_conf", "set_config",
        "pg_notify",
        # Server files and large objects
        "pg_read_file", "pg_read_binary_file", "pg_stat_file",
        "pg_ls_dir", "pg_ls_logdir", "pg_ls_waldir", "pg_ls_tmpdir", "pg_ls_archive_statusdir",
        "lo_import", "lo_export", "lo_get", "lo_put", "lo_from_bytea", "lo_unlink",
        # Run SQL or dump tables named in a string, out of reach of the FROM/JOIN allow-list
        "query_to_xml", "query_to_xml_and_xmlschema", "query_to_xmlschema",
        "table_to_xml", "table_to_xml_and_xmlschema", "table_to_xmlschema",
        "schema_to_xml", "schema_to_xml_and_xmlschema", "schema_to_xmlschema",
        "database_to_xml", "database_to_xml_and_xmlschema", "database_to_xmlschema",
        "cursor_to_xml", "cursor_to_xmlschema",
        "dblink", "dblink_exec", "dblink_connect", "dblink_send_query",
        # Session and transaction locks
        "pg_advisory_lock", "pg_advisory_lock_shared",
        "pg_advisory_xact_lock", "pg_advisory_xact_lock_shared",
        "pg_try_advisory_lock", "pg_try_advisory_lock_shared",
        "pg_try_advisory_xact_lock", "pg_try_advisory_xact_lock_shared",
        "nextval", "setval",
    }),
    default_schema="public",
    escape_strings=True,
    dollar_quoting=True,
    nested_comments=True,
)

MYSQL = DialectPolicy(
    name="mysql",
    forbidden_keywords=BASE_FORBIDDEN_KEYWORDS | {
        "lock", "unlock", "handler", "rename", "load", "prepare", "deallocate", "flush", "kill",
    },
    denied_functions=frozenset({"sleep", "benchmark", "load_file", "get_lock"}),
    backslash_escapes=True,
    double_quote_strings=True,
    backtick_identifiers=True,
    hash_comments=True,
    dash_comment_needs_space=True,
    executable_comments=True,
)

SQLITE = DialectPolicy(
    name="sqlite",
    forbidden_keywords=BASE_FORBIDDEN_KEYWORDS | {"pragma", "attach", "detach", "reindex"},
    # pragma_* table-valued functions expose schema outside the allow-list.
    denied_functions=frozenset({
        "load_extension", "readfile", "writefile",
        "pragma_table_info", "pragma_table_xinfo", "pragma_table_list",
        "pragma_index_list", "pragma_index_info", "pragma_index_xinfo",
        "pragma_foreign_key_list", "pragma_database_list",
        "pragma_function_list", "pragma_module_list", "pragma_pragma_list",
    }),
    default_schema="main",
    backtick_identifiers=True,
    bracket_identifiers=True,
)

_POLICIES: dict[str, DialectPolicy] = {p.name: p for p in (POSTGRESQL, MYSQL, SQLITE)}

# Connector type names used by data sources map onto dialects.
_ALIASES = {"postgres": "postgresql", "pg": "postgresql", "sqlite3": "sqlite", "mariadb": "mysql"}


def get_dialect_policy(dialect: str) -> DialectPolicy:
    """Return the policy for `dialect`; unknown names are a configuration error."""
    key = (dialect or "").strip().lower()
    key = _ALIASES.get(key, key)
    policy = _POLICIES.get(key)
    if policy is None:
        raise ConfigError(f"Unsupported SQL dialect: {dialect!r} (expected one of {sorted(_POLICIES)})")
    return policy


def supported_dialects() -> list[str]:
    return sorted(_POLICIES)
