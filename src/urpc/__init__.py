"""
Top-level package for urpc.

One repository API (`find_many`, `find_one`, `create`, `update`, `upsert`,
`delete`, `call`) over pluggable per-entity data-source adapters, with a
middleware pipeline, relation includes and remote dispatch.

Schema provisioning lives in `urpc.provisioning`.
"""

from .adapters import BaseAdapter, DataSourceAdapter, MemoryAdapter
from .client import Repository, URPCClient, get_client, init, repo, shutdown
from .config import (
    CacheConfig,
    ClientConfig,
    EntityConfig,
    FieldConfig,
    I18nConfig,
    RemoteConfig,
    Settings,
    load_env,
)
from .errors import (
    AdapterNotFoundError,
    ErrorCode,
    InvalidArgumentError,
    NoSourceConfiguredError,
    RelationResolutionError,
    RemoteError,
    RemoteTimeoutError,
    URPCError,
)
from .middleware import (
    LocalizationMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewareContext,
    MiddlewareManager,
    MiddlewareOptions,
)
from .plugins import Plugin, StaticPlugin
from .registry import AdapterRegistry
from .relations import join_many, join_one
from .remote import HttpTransport, RemoteTransport
from .types import (
    CallArgs,
    CallContext,
    CreationArgs,
    DeletionArgs,
    EntityDefinition,
    FindManyArgs,
    FindOneArgs,
    Operation,
    StreamHandle,
    UpdateArgs,
    UpsertArgs,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "URPCClient",
    "Repository",
    "init",
    "repo",
    "get_client",
    "shutdown",
    # Adapters
    "DataSourceAdapter",
    "BaseAdapter",
    "MemoryAdapter",
    "AdapterRegistry",
    "Plugin",
    "StaticPlugin",
    # Arguments
    "Operation",
    "FindManyArgs",
    "FindOneArgs",
    "CreationArgs",
    "UpdateArgs",
    "UpsertArgs",
    "DeletionArgs",
    "CallArgs",
    "CallContext",
    "StreamHandle",
    "EntityDefinition",
    # Middleware
    "Middleware",
    "MiddlewareContext",
    "MiddlewareManager",
    "MiddlewareOptions",
    "LoggingMiddleware",
    "LocalizationMiddleware",
    # Relations
    "join_one",
    "join_many",
    # Remote
    "RemoteTransport",
    "HttpTransport",
    # Config
    "ClientConfig",
    "EntityConfig",
    "FieldConfig",
    "I18nConfig",
    "CacheConfig",
    "RemoteConfig",
    "Settings",
    "load_env",
    # Errors
    "ErrorCode",
    "URPCError",
    "AdapterNotFoundError",
    "NoSourceConfiguredError",
    "InvalidArgumentError",
    "RemoteError",
    "RemoteTimeoutError",
    "RelationResolutionError",
]
