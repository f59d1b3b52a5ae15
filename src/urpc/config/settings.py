"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from .entity import EntityConfig
from .logging import LoggingConfig
from .remote import DatabaseConfig, RemoteConfig


@dataclass
class Settings:
    """
    Master configuration for urpc.

    This aggregates the file/env-loadable configuration sections into a
    single object. Code-level pieces (plugins, middleware, adapters) are
    supplied through ClientConfig.
    """

    remote: RemoteConfig = field(default_factory=RemoteConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    entities: dict[str, EntityConfig] = field(default_factory=dict)

    @classmethod
    def from_env(cls, prefix: str = "URPC_") -> Settings:
        """
        Load settings from environment variables.

        Example:
            URPC_BASE_URL=http://localhost:3000/api
            URPC_TIMEOUT=5
            URPC_DATABASE_URL=postgresql://...
            URPC_LOG_LEVEL=DEBUG
        """
        settings = cls()

        # Remote settings; replace() re-runs RemoteConfig validation
        remote: dict[str, Any] = {}
        if url := os.getenv(f"{prefix}BASE_URL"):
            remote["base_url"] = url
        if timeout := os.getenv(f"{prefix}TIMEOUT"):
            remote["timeout"] = float(timeout)
        if token := os.getenv(f"{prefix}AUTH_TOKEN"):
            remote["headers"] = {**settings.remote.headers, "Authorization": f"Bearer {token}"}
        if remote:
            settings.remote = replace(settings.remote, **remote)

        # Database settings
        if db_url := os.getenv(f"{prefix}DATABASE_URL"):
            settings.database.url = db_url

        # Logging settings
        log: dict[str, Any] = {}
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            log["level"] = level.upper()
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            log["format"] = log_format.lower()
        if log:
            settings.logging = replace(settings.logging, **log)

        return settings

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            Settings object with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            import tomllib

            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema first.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e.message}") from e

        settings = cls()

        if "remote" in data:
            settings.remote = RemoteConfig(**data["remote"])

        if "database" in data:
            for key, value in data["database"].items():
                if hasattr(settings.database, key):
                    setattr(settings.database, key, value)

        if "logging" in data:
            settings.logging = LoggingConfig(**data["logging"])

        if "entities" in data:
            settings.entities = {
                name: EntityConfig.from_dict(cfg) for name, cfg in data["entities"].items()
            }

        return settings

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        import dataclasses

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {k: convert(v) for k, v in dataclasses.asdict(obj).items()}
            if isinstance(obj, Path):
                return str(obj)
            return obj

        return convert(self)


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "load_env"]
