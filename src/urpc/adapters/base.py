"""
Adapter interface.

Adapters are capability-based: anything that implements these coroutine
methods can be registered for an (entity, source) pair. No base class is
required; `BaseAdapter` is a convenience for adapters that only support a
subset of operations.
"""

from __future__ import annotations

from typing import Any, ClassVar, Protocol, runtime_checkable

from ..types import (
    CallArgs,
    CallContext,
    CreationArgs,
    DeletionArgs,
    FindManyArgs,
    FindOneArgs,
    Record,
    UpdateArgs,
)


@runtime_checkable
class DataSourceAdapter(Protocol):
    """Operations every adapter exposes."""

    async def find_many(self, args: FindManyArgs) -> list[Record]: ...

    async def find_one(self, args: FindOneArgs) -> Record | None: ...

    async def create(self, args: CreationArgs) -> Record: ...

    async def update(self, args: UpdateArgs) -> Record: ...

    async def delete(self, args: DeletionArgs) -> bool: ...

    async def call(self, args: CallArgs, ctx: CallContext | None = None) -> Any: ...


class BaseAdapter:
    """Adapter skeleton whose operations raise NotImplementedError.

    Subclasses set `source_name` so they can be used as global adapters.
    """

    source_name: ClassVar[str | None] = None

    async def find_many(self, args: FindManyArgs) -> list[Record]:
        raise NotImplementedError(f"{type(self).__name__} does not support find_many")

    async def find_one(self, args: FindOneArgs) -> Record | None:
        raise NotImplementedError(f"{type(self).__name__} does not support find_one")

    async def create(self, args: CreationArgs) -> Record:
        raise NotImplementedError(f"{type(self).__name__} does not support create")

    async def update(self, args: UpdateArgs) -> Record:
        raise NotImplementedError(f"{type(self).__name__} does not support update")

    async def delete(self, args: DeletionArgs) -> bool:
        raise NotImplementedError(f"{type(self).__name__} does not support delete")

    async def call(self, args: CallArgs, ctx: CallContext | None = None) -> Any:
        raise NotImplementedError(f"{type(self).__name__} does not support call")


__all__ = ["DataSourceAdapter", "BaseAdapter"]
