"""
Idempotent table provisioning from declarative source configs.

For every entity with a table definition the provisioner checks whether the
schema-qualified table exists and creates it if not. Existing tables and
"already exists" failures are skipped; any other failure aborts the run.
One connection is used per run and is always closed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

import asyncpg

from ..config.remote import DatabaseConfig
from ..errors import MissingConnectionStringError, ProvisioningError
from ..logging import redact_dsn, timed
from .dialect import Dialect, PostgreSQLDialect
from .models import SourceConfig

logger = logging.getLogger(__name__)

Connect = Callable[..., Awaitable[Any]]


@dataclass
class ProvisioningReport:
    """Tables created and skipped during one run (schema-qualified names)."""

    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    duration_ms: float | None = None

    @property
    def total(self) -> int:
        return len(self.created) + len(self.skipped)


def _already_exists(error: Exception) -> bool:
    if isinstance(error, (asyncpg.exceptions.DuplicateTableError, asyncpg.exceptions.DuplicateObjectError)):
        return True
    return "already exists" in str(error)


async def create_tables_from_config(
    source_configs: Iterable[SourceConfig],
    connection_string: str | None = None,
    *,
    dialect: Dialect | None = None,
    connect: Connect | None = None,
    connect_timeout: float | None = None,
) -> ProvisioningReport:
    """
    Create missing tables for every configured entity.

    Args:
        source_configs: Parsed source configurations
        connection_string: Database URL; falls back to URPC_DATABASE_URL / DATABASE_URL
        dialect: DDL dialect (PostgreSQL by default)
        connect: Async connection factory (defaults to asyncpg.connect)
        connect_timeout: Connection timeout in seconds

    Returns:
        Report of created and skipped tables

    Raises:
        MissingConnectionStringError: no connection string available
        ProvisioningError: connection or table creation failed
    """
    db = DatabaseConfig()
    dsn = connection_string or db.url
    if not dsn:
        logger.error("No database connection string configured")
        raise MissingConnectionStringError()

    dialect = dialect or PostgreSQLDialect()
    connect = connect or asyncpg.connect
    timeout = connect_timeout if connect_timeout is not None else db.connect_timeout

    logger.info(f"Initializing database tables on {redact_dsn(dsn)}")
    try:
        conn = await connect(dsn, timeout=timeout)
    except Exception as e:
        logger.error(f"Could not connect to {redact_dsn(dsn)}: {e}")
        raise ProvisioningError(f"Could not connect to database: {e}", cause=e) from e

    report = ProvisioningReport()
    ensured_schemas: set[str] = set()
    try:
        with timed() as timer:
            for config in source_configs:
                logger.info(f"Processing configuration: {config.id}")
                for entity_name, entity in config.entities.items():
                    table = entity.table
                    if table is None:
                        continue
                    label = f"{table.schema}.{table.name}"
                    try:
                        exists = await conn.fetchval(dialect.table_exists_query(), table.schema, table.name)
                        if exists:
                            logger.info(f"Table already exists, skipping: {label}")
                            report.skipped.append(label)
                            continue

                        logger.info(f"Creating table for entity: {entity_name}")
                        schema_sql = dialect.create_schema(table.schema)
                        if schema_sql and table.schema not in ensured_schemas:
                            await conn.execute(schema_sql)
                            ensured_schemas.add(table.schema)
                        await conn.execute(dialect.create_table(table))
                    except Exception as e:
                        if _already_exists(e):
                            logger.info(f"Table or related objects already exist, skipping: {label}")
                            report.skipped.append(label)
                            continue
                        logger.error(f"Error creating table {label} for source '{config.id}': {e}")
                        raise ProvisioningError(source_id=config.id, table=label, cause=e) from e

                    logger.info(f"Table created: {label}")
                    report.created.append(label)
        report.duration_ms = timer.elapsed_ms
        logger.info(
            f"All database tables initialized ({len(report.created)} created, "
            f"{len(report.skipped)} skipped)"
        )
    finally:
        await conn.close()

    return report


__all__ = ["ProvisioningReport", "create_tables_from_config"]
