"""vista_guard.contracts.tool_base

Tool interfaces for external systems.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any


class DatabaseTool(ABC):
    """A live, tenant-scoped database handle.

    `execute` only ever receives SQL the guard accepted; implementations still
    run it read-only and under a statement timeout.
    """

    dialect: str

    @abstractmethod
    def execute(self, sql: str, timeout_seconds: int) -> dict[str, Any]:
        """Return {"columns": [...], "rows": [[...]], "elapsed_ms": int}."""
        raise NotImplementedError

    @abstractmethod
    def list_tables(self) -> list[str]:
        """Base tables visible to this connection, qualified where not in the default schema."""
        raise NotImplementedError

    @abstractmethod
    def list_columns(self) -> list[tuple[str, str, str]]:
        """(table, column, data_type) rows in table/ordinal order."""
        raise NotImplementedError
