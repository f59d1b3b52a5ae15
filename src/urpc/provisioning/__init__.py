"""
Relational schema provisioning.

Creates the tables declared in source configs, idempotently:

    report = await create_tables_from_config(load_source_configs("sources.yaml"))
"""

from .dialect import Dialect, PostgreSQLDialect, sanitize_identifier
from .models import (
    AUTO_INCREMENT,
    COLUMN_TYPES,
    NOW,
    ColumnConfig,
    EntityTableConfig,
    SourceConfig,
    TableConfig,
    load_source_configs,
    parse_source_configs,
)
from .provisioner import ProvisioningReport, create_tables_from_config

__all__ = [
    "AUTO_INCREMENT",
    "NOW",
    "COLUMN_TYPES",
    "ColumnConfig",
    "TableConfig",
    "EntityTableConfig",
    "SourceConfig",
    "load_source_configs",
    "parse_source_configs",
    "Dialect",
    "PostgreSQLDialect",
    "sanitize_identifier",
    "ProvisioningReport",
    "create_tables_from_config",
]
