"""vista_guard.errors

Central error types. An unsafe statement is not an error: the guard reports it
through GuardDecision. These are for misconfiguration and execution failures.
"""


class AppError(Exception):
    """Base application error."""


class ConfigError(AppError):
    """Raised when required configuration is missing or invalid (e.g. unknown dialect)."""


class UnsafeSQLError(AppError):
    """Raised when execution is attempted with SQL the guard did not accept."""


class ToolError(AppError):
    """Raised when an external tool call fails (database, introspection)."""


class QueryTimeoutError(ToolError):
    """Raised when the database cancels a statement for exceeding its timeout."""
