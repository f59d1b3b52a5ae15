"""
Declarative relational schema configuration.

A source config maps entity names to an optional table definition:

    sources:
      - id: shop
        entities:
          product:
            table:
              schema: public
              name: products
              columns:
                id: {type: integer, default: AUTO_INCREMENT, primary_key: true}
                created_at: {type: timestamp, default: "NOW()"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import jsonschema
import yaml

from ..config_schema import SOURCES_SCHEMA
from ..errors import InvalidConfigError

AUTO_INCREMENT = "AUTO_INCREMENT"
NOW = "NOW()"

COLUMN_TYPES = frozenset({
    "integer",
    "bigint",
    "varchar",
    "text",
    "timestamp",
    "boolean",
    "decimal",
    "float",
    "json",
    "jsonb",
    "uuid",
})


@dataclass(frozen=True)
class ColumnConfig:
    """One column. Unknown types are allowed and fall back to the dialect default."""

    type: str
    nullable: bool = True
    unique: bool = False
    default: Any = None
    primary_key: bool = False

    @property
    def auto_increment(self) -> bool:
        return self.default == AUTO_INCREMENT

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ColumnConfig:
        return cls(
            type=str(data["type"]),
            nullable=data.get("nullable", True) is not False,
            unique=bool(data.get("unique", False)),
            default=data.get("default"),
            primary_key=bool(data.get("primary_key", False)),
        )


@dataclass(frozen=True)
class TableConfig:
    name: str
    columns: dict[str, ColumnConfig] = field(default_factory=dict)
    schema: str = "public"

    def __post_init__(self):
        if not self.name:
            raise ValueError("table name cannot be empty")
        if not self.columns:
            raise ValueError(f"table {self.name!r} declares no columns")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TableConfig:
        return cls(
            name=data["name"],
            schema=data.get("schema") or "public",
            columns={
                col: ColumnConfig.from_dict(raw)
                for col, raw in (data.get("columns") or {}).items()
            },
        )


@dataclass(frozen=True)
class EntityTableConfig:
    """Per-entity provisioning section; entities without a table are skipped."""

    table: TableConfig | None = None


@dataclass(frozen=True)
class SourceConfig:
    id: str
    entities: dict[str, EntityTableConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SourceConfig:
        entities = {}
        for name, raw in (data.get("entities") or {}).items():
            table = (raw or {}).get("table")
            entities[name] = EntityTableConfig(table=TableConfig.from_dict(table) if table else None)
        return cls(id=data["id"], entities=entities)


def parse_source_configs(data: Any) -> list[SourceConfig]:
    """Validate and build source configs from a `{"sources": [...]}` mapping or a bare list."""
    if isinstance(data, list):
        data = {"sources": data}
    try:
        jsonschema.validate(instance=data, schema=SOURCES_SCHEMA)
    except jsonschema.ValidationError as e:
        raise InvalidConfigError(f"Source configuration validation failed: {e.message}") from e
    try:
        return [SourceConfig.from_dict(item) for item in data["sources"]]
    except ValueError as e:
        raise InvalidConfigError(str(e)) from e


def load_source_configs(path: str | Path) -> list[SourceConfig]:
    """Load source configs from a YAML, JSON or TOML file."""
    path = Path(path)
    if not path.exists():
        raise InvalidConfigError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    elif suffix == ".json":
        with open(path) as f:
            data = json.load(f)
    elif suffix == ".toml":
        import tomllib

        with open(path, "rb") as f:
            data = tomllib.load(f)
    else:
        raise InvalidConfigError(f"Unsupported config file format: {suffix}")

    return parse_source_configs(data)


__all__ = [
    "AUTO_INCREMENT",
    "NOW",
    "COLUMN_TYPES",
    "ColumnConfig",
    "TableConfig",
    "EntityTableConfig",
    "SourceConfig",
    "parse_source_configs",
    "load_source_configs",
]
