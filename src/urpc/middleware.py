"""Middleware pipeline for entity operations.

Middleware wraps every locally-executed operation to add cross-cutting
concerns (logging, localization, auditing, access checks).

Ordering:
- Applicable middleware is filtered by `required_entities` (unscoped
  middleware always applies).
- Entries are grouped by position: `before`, `around`, `after`; within a
  group by ascending priority, then registration order.

Execution shape for one call::

    before_1(before_2(
        around_1(around_2(operation))  -> context.result
        after_1(after_2(-> context.result))
    ))

`before` middleware runs ahead of the wrapped call, `around` middleware wraps
the operation itself, and `after` middleware runs once the wrapped call has
produced a result. Each middleware receives `(context, next)` and calls
`await next()` exactly once to continue; not calling it short-circuits and
its return value becomes the result. Calling `next()` twice runs the
downstream chain (and the operation) twice; the manager does not guard
against it.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping

from .config.base import MiddlewarePosition
from .config.entity import EntityConfig, I18nConfig
from .logging import OperationLog, StructuredLogger, generate_request_id, get_logger, timed
from .types import Operation

Next = Callable[[], Awaitable[Any]]
MiddlewareFn = Callable[["MiddlewareContext", Next], Awaitable[Any]]

_POSITIONS: dict[str, int] = {"before": 0, "around": 1, "after": 2}


@dataclass
class MiddlewareMetadata:
    """Routing metadata for the call."""

    entity: str
    source: str | None = None
    locale: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class MiddlewareContext:
    """Context passed through the middleware chain."""

    operation: Operation
    args: Any
    metadata: MiddlewareMetadata
    result: Any = None

    @property
    def entity(self) -> str:
        return self.metadata.entity


class Middleware(ABC):
    """Base class for middleware.

    Subclasses set `name` and may override the default placement
    (`position`, `priority`) and scoping (`required_entities`).
    """

    name: str = ""
    position: MiddlewarePosition = "before"
    priority: int = 100
    required_entities: list[str] | None = None

    @abstractmethod
    async def __call__(self, ctx: MiddlewareContext, next: Next) -> Any:
        """Execute middleware logic.

        Args:
            ctx: Operation context with arguments, result slot and metadata.
            next: Continuation for the rest of the chain (call once).

        Returns:
            The operation result.
        """
        ...


class FunctionMiddleware(Middleware):
    """Middleware backed by a plain async function."""

    def __init__(
        self,
        name: str,
        fn: MiddlewareFn,
        required_entities: Iterable[str] | None = None,
    ):
        self.name = name
        self.fn = fn
        self.required_entities = list(required_entities) if required_entities is not None else None

    async def __call__(self, ctx: MiddlewareContext, next: Next) -> Any:
        return await self.fn(ctx, next)


def middleware(
    name: str | None = None,
    entities: Iterable[str] | None = None,
) -> Callable[[MiddlewareFn], FunctionMiddleware]:
    """Decorator turning an async `(ctx, next)` function into middleware."""

    def decorator(fn: MiddlewareFn) -> FunctionMiddleware:
        return FunctionMiddleware(name or fn.__name__, fn, required_entities=entities)

    return decorator


@dataclass(frozen=True)
class MiddlewareOptions:
    """Placement overrides supplied to `MiddlewareManager.use`."""

    position: MiddlewarePosition | None = None
    priority: int | None = None
    name: str | None = None
    required_entities: tuple[str, ...] | None = None

    def __post_init__(self):
        if self.position is not None and self.position not in _POSITIONS:
            raise ValueError(f"Invalid middleware position: {self.position!r}")
        if self.required_entities is not None and not isinstance(self.required_entities, tuple):
            object.__setattr__(self, "required_entities", tuple(self.required_entities))


@dataclass
class _Entry:
    name: str
    middleware: Middleware
    position: str
    priority: int
    required_entities: frozenset[str] | None
    seq: int

    def applies_to(self, entity: str) -> bool:
        return self.required_entities is None or entity in self.required_entities

    def sort_key(self) -> tuple[int, int, int]:
        return (_POSITIONS[self.position], self.priority, self.seq)


def _layer(mw: Middleware, ctx: MiddlewareContext, inner: Next) -> Next:
    async def run() -> Any:
        return await mw(ctx, inner)

    return run


def _after_layer(mw: Middleware, ctx: MiddlewareContext, inner: Next) -> Next:
    async def run() -> Any:
        ctx.result = await mw(ctx, inner)
        return ctx.result

    return run


class MiddlewareManager:
    """Ordered, named, entity-scoped middleware list.

    Middleware names are unique; `use` with an existing name replaces the
    earlier entry and moves it to the end of the registration order.
    """

    def __init__(self, middlewares: Iterable[Any] | None = None):
        self._entries: dict[str, _Entry] = {}
        self._seq = itertools.count()
        for item in middlewares or []:
            if isinstance(item, tuple):
                self.use(*item)
            else:
                self.use(item)

    def use(
        self,
        middleware: Middleware | MiddlewareFn,
        options: MiddlewareOptions | None = None,
    ) -> MiddlewareManager:
        """Register middleware. Returns self for chaining."""
        options = options or MiddlewareOptions()
        if not isinstance(middleware, Middleware):
            if not callable(middleware):
                raise TypeError(f"Middleware must be callable, got {middleware!r}")
            middleware = FunctionMiddleware(options.name or getattr(middleware, "__name__", ""), middleware)

        name = options.name or middleware.name
        if not name:
            raise ValueError("Middleware requires a name")

        if options.required_entities is not None:
            required = frozenset(options.required_entities)
        elif middleware.required_entities is not None:
            required = frozenset(middleware.required_entities)
        else:
            required = None

        self._entries[name] = _Entry(
            name=name,
            middleware=middleware,
            position=options.position or middleware.position,
            priority=options.priority if options.priority is not None else middleware.priority,
            required_entities=required,
            seq=next(self._seq),
        )
        return self

    def remove(self, name: str) -> bool:
        """Remove middleware by name. Returns True if it was registered."""
        return self._entries.pop(name, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def list(self, entity: str | None = None) -> list[str]:
        """Names in execution order, optionally filtered for an entity."""
        return [e.name for e in self._ordered(entity)]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def _ordered(self, entity: str | None) -> list[_Entry]:
        entries = self._entries.values()
        if entity is not None:
            entries = [e for e in entries if e.applies_to(entity)]
        return sorted(entries, key=_Entry.sort_key)

    async def execute(self, context: MiddlewareContext, operation: Next) -> Any:
        """Run `operation` wrapped by all middleware applicable to the context's entity.

        Exceptions from middleware or the operation propagate unchanged.
        """
        entries = self._ordered(context.entity)
        before = [e.middleware for e in entries if e.position == "before"]
        around = [e.middleware for e in entries if e.position == "around"]
        after = [e.middleware for e in entries if e.position == "after"]

        wrapped: Next = operation
        for mw in reversed(around):
            wrapped = _layer(mw, context, wrapped)

        async def current_result() -> Any:
            return context.result

        async def body() -> Any:
            context.result = await wrapped()
            tail: Next = current_result
            for mw in reversed(after):
                tail = _after_layer(mw, context, tail)
            return await tail()

        chain: Next = body
        for mw in reversed(before):
            chain = _layer(mw, context, chain)

        context.result = await chain()
        return context.result


# =============================================================================
# Built-in middleware
# =============================================================================


class LoggingMiddleware(Middleware):
    """Logs each operation with timing and outcome."""

    name = "logging"
    position = "before"
    priority = 0

    def __init__(self, logger: StructuredLogger | None = None, log_arguments: bool = False):
        self.logger = logger or get_logger("urpc")
        self.log_arguments = log_arguments

    async def __call__(self, ctx: MiddlewareContext, next: Next) -> Any:
        request_id = ctx.metadata.extra.setdefault("request_id", generate_request_id())
        op = OperationLog(
            request_id=request_id,
            entity=ctx.entity,
            source=ctx.metadata.source,
            operation=ctx.operation.value,
        )
        if self.log_arguments and hasattr(ctx.args, "to_dict"):
            self.logger.debug(f"{op.operation} arguments", request_id=request_id, args=ctx.args.to_dict())

        with timed() as timer:
            try:
                result = await next()
            except Exception as e:
                op.success = False
                op.error = str(e)
                op.duration_ms = timer.elapsed_ms
                self.logger.log_operation(op)
                raise

        op.duration_ms = timer.elapsed_ms
        if isinstance(result, list):
            op.row_count = len(result)
        self.logger.log_operation(op)
        return result


Translator = Callable[[Any, str, I18nConfig], Awaitable[Any]]


class LocalizationMiddleware(Middleware):
    """Translates i18n-flagged fields of read results into the call's locale.

    The translator is an async callable `(value, locale, i18n_config)`; the
    translation backend itself lives outside urpc. Calls without a locale are
    passed through unchanged.
    """

    name = "localization"
    position = "after"
    priority = 100

    def __init__(
        self,
        entity_configs: Mapping[str, EntityConfig],
        translator: Translator,
    ):
        self.translator = translator
        self._fields: dict[str, dict[str, I18nConfig]] = {}
        for entity, cfg in entity_configs.items():
            localized = {
                name: fc.i18n_config
                for name, fc in cfg.fields.items()
                if fc.i18n_config is not None
            }
            if localized:
                self._fields[entity] = localized
        self.required_entities = list(self._fields)

    async def _translate_row(self, row: Any, fields: dict[str, I18nConfig], locale: str) -> Any:
        if not isinstance(row, dict):
            return row
        translated = dict(row)
        for name, i18n in fields.items():
            value = translated.get(name)
            if value is not None:
                translated[name] = await self.translator(value, locale, i18n)
        return translated

    async def __call__(self, ctx: MiddlewareContext, next: Next) -> Any:
        result = await next()
        locale = ctx.metadata.locale
        fields = self._fields.get(ctx.entity)
        if not locale or not fields or not ctx.operation.is_read:
            return result
        if isinstance(result, list):
            return [await self._translate_row(row, fields, locale) for row in result]
        return await self._translate_row(result, fields, locale)


__all__ = [
    "Next",
    "MiddlewareFn",
    "MiddlewareMetadata",
    "MiddlewareContext",
    "Middleware",
    "FunctionMiddleware",
    "middleware",
    "MiddlewareOptions",
    "MiddlewareManager",
    "LoggingMiddleware",
    "LocalizationMiddleware",
    "Translator",
]
