"""vista_guard.main

Wiring for settings + logging + tools + catalog + guard + runner.
"""

from __future__ import annotations

from typing import Optional

from vista_guard.env_loader import load_env
from vista_guard.config import Settings
from vista_guard.logging_utils import build_logger
from vista_guard.tracing import TraceCollector
from vista_guard.cache import TTLCache

from vista_guard.orchestrator import QueryRunner
from vista_guard.schema.catalog import SchemaCatalog

from vista_guard.policy.dialects import get_dialect_policy
from vista_guard.policy.limits_policy import LimitsPolicy

from vista_guard.contracts.models import QueryRequest, QueryResponse
from vista_guard.contracts.tool_base import DatabaseTool
from vista_guard.tools.db_postgres_tool import PostgresDatabaseTool
from vista_guard.tools.db_sqlite_tool import SqliteDatabaseTool

from vista_guard.agents.sql_safety_guard import SQLSafetyGuardAgent
from vista_guard.agents.db_executor import DBExecutorAgent


def build_db_tool(settings: Settings, logger) -> DatabaseTool:
    if settings.db_backend == "sqlite":
        return SqliteDatabaseTool(settings.sqlite_path, logger=logger)
    return PostgresDatabaseTool(settings.database_url, logger=logger)


def build_runner(settings: Optional[Settings] = None, db_tool: Optional[DatabaseTool] = None) -> QueryRunner:
    if settings is None:
        load_env()  # load .env if present
        settings = Settings.load()
    logger = build_logger(settings.log_dir)
    tracer = TraceCollector()

    if db_tool is None:
        db_tool = build_db_tool(settings, logger)
    if db_tool.dialect != settings.dialect:
        logger.warning(f"GUARD_DIALECT={settings.dialect} ignored; the {db_tool.dialect} connection decides the dialect")

    catalog = SchemaCatalog(TTLCache(settings.schema_cache_ttl_seconds), logger)
    guard_options = {
        "allow_trailing_semicolon": settings.allow_trailing_semicolon,
        "existing_limit_policy": settings.existing_limit_policy,
    }
    limits_policy = LimitsPolicy(get_dialect_policy(db_tool.dialect), settings.existing_limit_policy)

    sql_safety = SQLSafetyGuardAgent(catalog, db_tool, tracer, logger, guard_options=guard_options)
    db_executor = DBExecutorAgent(db_tool, limits_policy, tracer, logger)

    return QueryRunner(sql_safety=sql_safety, db_executor=db_executor, tracer=tracer, logger=logger)


def handle_query(source_key: str, sql: str, scope: Optional[list[str]] = None) -> QueryResponse:
    load_env()
    settings = Settings.load()
    runner = build_runner(settings)
    req = QueryRequest(
        source_key=source_key,
        sql=sql,
        max_rows=settings.max_rows,
        scope=scope,
        max_cols=settings.max_cols,
        timeout_seconds=settings.statement_timeout_seconds,
    )
    return runner.run(req)
