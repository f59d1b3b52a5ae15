"""
Client and dispatch router.

`URPCClient` owns one adapter registry and one middleware pipeline. Every
operation goes through `dispatch`:

1. Arguments are validated and their canonical filter is built.
2. If a local adapter resolves for (entity, source), the adapter call runs
   inside the middleware pipeline.
3. Otherwise, if a remote endpoint is configured, the operation is forwarded
   to it, bounded by the configured timeout.
4. Otherwise the call fails with `NoSourceConfiguredError` (or the original
   `AdapterNotFoundError` when the entity has adapters for other sources).

Includes are resolved once, on the final result of either path.

Example:
    ```python
    import urpc
    from urpc import ClientConfig, EntityConfig, MemoryAdapter, StaticPlugin

    client = urpc.init(ClientConfig(
        plugins=[StaticPlugin("todos", entities=["todo"])],
        entity_configs={"todo": EntityConfig(default_source="memory")},
        global_adapters=[MemoryAdapter],
    ))
    todo = await urpc.repo("todo").create(data={"id": 1, "title": "write docs"})
    ```
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from .config.client import ClientConfig
from .errors import (
    AdapterNotFoundError,
    ConfigError,
    InvalidArgumentError,
    NoSourceConfiguredError,
    RemoteTimeoutError,
    RoutingError,
)
from .middleware import MiddlewareContext, MiddlewareManager, MiddlewareMetadata
from .query import normalize_args, normalize_where
from .registry import AdapterRegistry
from .relations import resolve_many, resolve_one
from .remote import HttpTransport, RemoteRequest, RemoteTransport
from .types import (
    CallArgs,
    CallContext,
    CreationArgs,
    DeletionArgs,
    FindManyArgs,
    FindOneArgs,
    Operation,
    Record,
    UpdateArgs,
    UpsertArgs,
    is_stream_handle,
)

logger = logging.getLogger(__name__)

_ARGS_TYPES: dict[Operation, type] = {
    Operation.FIND_MANY: FindManyArgs,
    Operation.FIND_ONE: FindOneArgs,
    Operation.CREATE: CreationArgs,
    Operation.UPDATE: UpdateArgs,
    Operation.UPSERT: UpsertArgs,
    Operation.DELETE: DeletionArgs,
    Operation.CALL: CallArgs,
}


def _coerce_args(operation: Operation, args: Any) -> Any:
    expected = _ARGS_TYPES[operation]
    if args is None:
        if operation in (Operation.FIND_MANY, Operation.CALL):
            return expected()
        raise InvalidArgumentError(f"{operation.value} requires arguments", argument="args")
    if isinstance(args, expected):
        return args
    if isinstance(args, Mapping):
        if operation is Operation.CALL:
            return CallArgs(params=dict(args))
        try:
            return expected(**args)
        except TypeError as e:
            raise InvalidArgumentError(f"Invalid {operation.value} arguments: {e}", argument="args") from e
    raise InvalidArgumentError(
        f"{operation.value} expects {expected.__name__}, got {type(args).__name__}",
        argument="args",
    )


class URPCClient:
    """Routes entity operations to local adapters or the remote endpoint."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: RemoteTransport | None = None,
    ):
        self.config = config or ClientConfig()
        self.registry = AdapterRegistry(self.config.entity_configs)
        self.middleware = MiddlewareManager(self.config.middlewares)
        self.registry.apply_plugins(self.config.plugins, self.config.global_adapters)
        self._transport = transport

    # ------------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------------

    @property
    def remote_enabled(self) -> bool:
        return self._transport is not None or self.config.remote.enabled

    @property
    def transport(self) -> RemoteTransport:
        if self._transport is None:
            if not self.config.remote.enabled:
                raise ConfigError("No remote base_url configured")
            self._transport = HttpTransport(
                base_url=self.config.remote.base_url,
                headers=dict(self.config.remote.headers),
            )
        return self._transport

    async def close(self) -> None:
        if self._transport is not None:
            await self._transport.close()

    async def __aenter__(self) -> URPCClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def repo(self, entity: str, source: str | None = None, locale: str | None = None) -> Repository:
        return Repository(self, entity, source=source, locale=locale)

    async def dispatch(
        self,
        entity: str,
        operation: Operation | str,
        args: Any = None,
        *,
        source: str | None = None,
        context: CallContext | None = None,
        locale: str | None = None,
    ) -> Any:
        """Execute one operation locally or remotely and resolve its includes."""
        try:
            operation = Operation(operation)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown operation: {operation!r}", argument="operation") from e
        args = normalize_args(operation, _coerce_args(operation, args), self.registry.schema_for(entity))

        try:
            adapter = self.registry.resolve(entity, source)
        except RoutingError as e:
            if not self.remote_enabled:
                if isinstance(e, AdapterNotFoundError) and not self.registry.has_adapters(entity):
                    raise NoSourceConfiguredError(entity=entity) from e
                raise
            result = await self._dispatch_remote(entity, operation, args, source, context)
        else:
            args, result = await self._dispatch_local(adapter, entity, operation, args, source, context, locale)

        return await self._resolve_includes(operation, args, result)

    async def _dispatch_local(
        self,
        adapter: Any,
        entity: str,
        operation: Operation,
        args: Any,
        source: str | None,
        context: CallContext | None,
        locale: str | None,
    ) -> tuple[Any, Any]:
        ctx = MiddlewareContext(
            operation=operation,
            args=args,
            metadata=MiddlewareMetadata(
                entity=entity,
                source=source or self.registry.default_source(entity),
                locale=locale,
            ),
        )

        # Reads ctx.args at call time so "before" middleware can rewrite them
        async def invoke() -> Any:
            return await self._invoke_adapter(adapter, entity, operation, ctx.args, context)

        result = await self.middleware.execute(ctx, invoke)
        return ctx.args, result

    async def _invoke_adapter(
        self,
        adapter: Any,
        entity: str,
        operation: Operation,
        args: Any,
        context: CallContext | None,
    ) -> Any:
        if operation is Operation.FIND_MANY:
            return await adapter.find_many(args)
        if operation is Operation.FIND_ONE:
            return await adapter.find_one(args)
        if operation is Operation.CREATE:
            return await adapter.create(args)
        if operation is Operation.UPDATE:
            return await adapter.update(args)
        if operation is Operation.DELETE:
            return await adapter.delete(args)
        if operation is Operation.CALL:
            return await adapter.call(args, context)

        if hasattr(adapter, "upsert"):
            return await adapter.upsert(args)
        filter_ = normalize_where(args.where, self.registry.schema_for(entity))
        existing = await adapter.find_one(FindOneArgs(where=args.where, filter=filter_))
        if existing is not None:
            return await adapter.update(UpdateArgs(where=args.where, data=args.update, filter=filter_))
        return await adapter.create(CreationArgs(data=args.create))

    async def _dispatch_remote(
        self,
        entity: str,
        operation: Operation,
        args: Any,
        source: str | None,
        context: CallContext | None,
    ) -> Any:
        request = RemoteRequest(entity=entity, operation=operation, args=args, source=source, context=context)
        timeout = self.config.remote.timeout
        logger.debug(f"Forwarding {operation.value} on {entity} to remote endpoint")
        try:
            # wait_for cancels the pending request on expiry
            return await asyncio.wait_for(self.transport.send(request), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise RemoteTimeoutError(timeout=timeout, context=request.error_context(), cause=e) from e

    async def _resolve_includes(self, operation: Operation, args: Any, result: Any) -> Any:
        include = getattr(args, "include", None)
        if not include or is_stream_handle(result):
            return result
        if operation is Operation.FIND_ONE:
            return await resolve_one(result, include)
        if operation is Operation.FIND_MANY:
            return await resolve_many(list(result or []), include)
        return result


class Repository:
    """Entity-scoped facade over `URPCClient.dispatch`.

    Methods take either an args object or the same fields as keywords:
    `find_many(FindManyArgs(limit=5))` or `find_many(limit=5)`.
    """

    def __init__(
        self,
        client: URPCClient,
        entity: str,
        *,
        source: str | None = None,
        locale: str | None = None,
    ):
        self.client = client
        self.entity = entity
        self.source = source
        self.locale = locale

    def __repr__(self) -> str:
        return f"Repository(entity={self.entity!r}, source={self.source!r})"

    def with_locale(self, locale: str | None) -> Repository:
        return Repository(self.client, self.entity, source=self.source, locale=locale)

    async def _dispatch(self, operation: Operation, args: Any, kwargs: dict[str, Any], context=None) -> Any:
        if args is None and kwargs:
            args = kwargs
        elif kwargs:
            raise InvalidArgumentError("Pass either an args object or keyword arguments, not both", argument="args")
        return await self.client.dispatch(
            self.entity,
            operation,
            args,
            source=self.source,
            context=context,
            locale=self.locale,
        )

    async def find_many(self, args: FindManyArgs | None = None, **kwargs: Any) -> list[Record]:
        return await self._dispatch(Operation.FIND_MANY, args, kwargs)

    async def find_one(self, args: FindOneArgs | None = None, **kwargs: Any) -> Record | None:
        return await self._dispatch(Operation.FIND_ONE, args, kwargs)

    async def create(self, args: CreationArgs | None = None, **kwargs: Any) -> Record:
        return await self._dispatch(Operation.CREATE, args, kwargs)

    async def update(self, args: UpdateArgs | None = None, **kwargs: Any) -> Record:
        return await self._dispatch(Operation.UPDATE, args, kwargs)

    async def upsert(self, args: UpsertArgs | None = None, **kwargs: Any) -> Record:
        return await self._dispatch(Operation.UPSERT, args, kwargs)

    async def delete(self, args: DeletionArgs | None = None, **kwargs: Any) -> bool:
        return await self._dispatch(Operation.DELETE, args, kwargs)

    async def call(
        self,
        params: CallArgs | Mapping[str, Any] | None = None,
        ctx: CallContext | None = None,
        **kwargs: Any,
    ) -> Any:
        if isinstance(params, CallArgs):
            args = params
        else:
            args = CallArgs(params={**dict(params or {}), **kwargs})
        return await self._dispatch(Operation.CALL, args, {}, context=ctx)


# =============================================================================
# Default client
# =============================================================================

_default_client: URPCClient | None = None


def init(config: ClientConfig | None = None, **kwargs: Any) -> URPCClient:
    """Create the process-wide default client.

    Either pass a `ClientConfig` or its fields as keywords. Calling `init`
    again replaces the default client.
    """
    global _default_client
    if config is None:
        config = ClientConfig(**kwargs)
    elif kwargs:
        raise TypeError("Pass either a ClientConfig or keyword fields, not both")
    _default_client = URPCClient(config)
    return _default_client


def get_client() -> URPCClient:
    if _default_client is None:
        raise ConfigError("urpc is not initialized; call urpc.init() first")
    return _default_client


def repo(entity: str, source: str | None = None, locale: str | None = None) -> Repository:
    """Repository for `entity` on the default client."""
    return get_client().repo(entity, source=source, locale=locale)


async def shutdown() -> None:
    """Close and drop the default client."""
    global _default_client
    if _default_client is not None:
        await _default_client.close()
        _default_client = None


__all__ = ["URPCClient", "Repository", "init", "get_client", "repo", "shutdown"]
