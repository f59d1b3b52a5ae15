"""
Configuration system for urpc.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading
- YAML/TOML file loading
- Sensible defaults with override capability
"""

from .base import LogFormat, LogLevel, MiddlewarePosition
from .client import ClientConfig
from .entity import CacheConfig, EntityConfig, FieldConfig, I18nConfig, coerce_entity_configs
from .logging import LoggingConfig
from .remote import DatabaseConfig, RemoteConfig
from .settings import Settings, load_env

__all__ = [
    # Types
    "LogLevel",
    "LogFormat",
    "MiddlewarePosition",
    # Entity configs
    "EntityConfig",
    "FieldConfig",
    "I18nConfig",
    "CacheConfig",
    "coerce_entity_configs",
    # Sections
    "RemoteConfig",
    "DatabaseConfig",
    "LoggingConfig",
    # Client
    "ClientConfig",
    # Master config
    "Settings",
    # Global functions
    "load_env",
]
