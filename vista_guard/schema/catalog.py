"""vista_guard.schema.catalog

Schema introspection with an injected TTL cache.

Provides the AllowedTableSet for a data source (discovered tables narrowed to
the tenant's selected scope) and a compact `table.column type` listing used as
LLM prompt context. Callers refresh a source after DDL changes so stale table
permissions do not outlive dropped or renamed tables.
"""

from __future__ import annotations
from typing import Iterable, Optional

from vista_guard.cache import TTLCache
from vista_guard.contracts.tool_base import DatabaseTool
from vista_guard.policy.dialects import get_dialect_policy
from vista_guard.policy.sql_policy import parse_qualified_name


class SchemaCatalog:
    """Per-source table and column listings, cached with expiry."""

    def __init__(self, cache: TTLCache, logger):
        self.cache = cache
        self.logger = logger

    @staticmethod
    def _key(db_tool: DatabaseTool, name: str) -> tuple[str, ...]:
        policy = get_dialect_policy(db_tool.dialect)
        parts = parse_qualified_name(name, policy)
        if len(parts) == 2 and parts[0] == policy.default_schema:
            return parts[1:]
        return parts

    def _tables(self, source_key: str, db_tool: DatabaseTool) -> list[str]:
        def load() -> list[str]:
            tables = db_tool.list_tables()
            self.logger.info(f"Introspected {len(tables)} tables for source={source_key}")
            return tables
        return self.cache.get_or_load(("tables", source_key), load)

    def allowed_tables(self, source_key: str, db_tool: DatabaseTool, scope: Optional[Iterable[str]] = None) -> list[str]:
        """Discovered tables, narrowed to `scope` when given. An empty scope allows nothing."""
        discovered = self._tables(source_key, db_tool)
        if scope is None:
            return list(discovered)
        wanted = {self._key(db_tool, s) for s in scope if s and s.strip()}
        return [t for t in discovered if self._key(db_tool, t) in wanted]

    def schema_ddl(self, source_key: str, db_tool: DatabaseTool, allowed_tables: Optional[Iterable[str]] = None) -> str:
        columns = self.cache.get_or_load(("columns", source_key), db_tool.list_columns)
        allowed = None if allowed_tables is None else {self._key(db_tool, t) for t in allowed_tables}
        lines = [
            f"{table}.{column} {dtype}"
            for table, column, dtype in columns
            if allowed is None or self._key(db_tool, table) in allowed
        ]
        return "\n".join(lines)

    def refresh(self, source_key: str) -> None:
        self.cache.invalidate(("tables", source_key))
        self.cache.invalidate(("columns", source_key))
