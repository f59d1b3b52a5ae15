"""SQL dialects for table provisioning.

A ``Dialect`` turns the declarative column vocabulary into DDL fragments
for one database backend. Only PostgreSQL ships here; other backends
implement the same protocol.
"""

from __future__ import annotations

import re
from typing import Any, Protocol, runtime_checkable

from .models import NOW, ColumnConfig, TableConfig

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_SQL_FUNCTION = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\(\)")


def sanitize_identifier(name: str) -> str:
    """Ensure a schema, table or column name is safe for SQL interpolation."""
    if not name:
        raise ValueError("identifier cannot be empty")
    if not _IDENTIFIER.fullmatch(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


@runtime_checkable
class Dialect(Protocol):
    """DDL contract used by the provisioner."""

    @property
    def name(self) -> str:
        ...

    def full_table_name(self, table: TableConfig) -> str:
        """Schema-qualified, quoted table name."""
        ...

    def column_type(self, column: ColumnConfig) -> str:
        ...

    def default_clause(self, column: ColumnConfig) -> str | None:
        """``DEFAULT ...`` fragment, or None when the column has no default."""
        ...

    def create_schema(self, schema: str) -> str | None:
        """Statement ensuring `schema` exists, or None if nothing is needed."""
        ...

    def create_table(self, table: TableConfig) -> str:
        ...

    def table_exists_query(self) -> str:
        """Query taking (schema, table) parameters and returning a boolean."""
        ...


class PostgreSQLDialect:
    """PostgreSQL DDL: ``SERIAL`` auto-increment, ``CURRENT_TIMESTAMP`` defaults."""

    TYPE_MAP: dict[str, str] = {
        "integer": "INTEGER",
        "bigint": "BIGINT",
        "varchar": "VARCHAR(255)",
        "text": "TEXT",
        "timestamp": "TIMESTAMP",
        "boolean": "BOOLEAN",
        "decimal": "DECIMAL",
        "float": "FLOAT",
        "json": "JSON",
        "jsonb": "JSONB",
        "uuid": "UUID",
    }
    SERIAL_MAP: dict[str, str] = {
        "integer": "SERIAL",
        "bigint": "BIGSERIAL",
    }
    FALLBACK_TYPE = "VARCHAR(255)"
    DEFAULT_SCHEMA = "public"

    @property
    def name(self) -> str:
        return "postgresql"

    def quote(self, identifier: str) -> str:
        return f'"{sanitize_identifier(identifier)}"'

    def full_table_name(self, table: TableConfig) -> str:
        return f"{self.quote(table.schema or self.DEFAULT_SCHEMA)}.{self.quote(table.name)}"

    def column_type(self, column: ColumnConfig) -> str:
        kind = column.type.lower()
        if column.auto_increment and kind in self.SERIAL_MAP:
            return self.SERIAL_MAP[kind]
        return self.TYPE_MAP.get(kind, self.FALLBACK_TYPE)

    def literal(self, value: Any) -> str:
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, (int, float)):
            return repr(value)
        text = str(value)
        if _SQL_FUNCTION.fullmatch(text):
            return text
        return "'" + text.replace("'", "''") + "'"

    def default_clause(self, column: ColumnConfig) -> str | None:
        if column.default is None or column.auto_increment:
            return None
        if column.default == NOW:
            return "DEFAULT CURRENT_TIMESTAMP"
        return f"DEFAULT {self.literal(column.default)}"

    def column_definition(self, name: str, column: ColumnConfig) -> str:
        parts = [self.quote(name), self.column_type(column)]
        if column.primary_key:
            parts.append("PRIMARY KEY")
        elif not column.nullable:
            parts.append("NOT NULL")
        if column.unique and not column.primary_key:
            parts.append("UNIQUE")
        default = self.default_clause(column)
        if default:
            parts.append(default)
        return " ".join(parts)

    def create_schema(self, schema: str) -> str | None:
        if not schema or schema == self.DEFAULT_SCHEMA:
            return None
        return f"CREATE SCHEMA IF NOT EXISTS {self.quote(schema)}"

    def create_table(self, table: TableConfig) -> str:
        columns = ",\n    ".join(
            self.column_definition(name, column) for name, column in table.columns.items()
        )
        return f"CREATE TABLE {self.full_table_name(table)} (\n    {columns}\n)"

    def table_exists_query(self) -> str:
        return (
            "SELECT EXISTS ("
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = $1 AND table_name = $2)"
        )


__all__ = ["Dialect", "PostgreSQLDialect", "sanitize_identifier"]
