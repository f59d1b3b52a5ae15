"""
Core types for urpc operations.

Entities are open key-value records (plain dicts). Every operation takes an
immutable argument object; relation includes are stored in the arguments as
plain async callables and resolved after the base fetch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Union

if TYPE_CHECKING:
    from .query import Filter


Record = dict[str, Any]

RelationCallbackSingle = Callable[[Record], Awaitable[Any]]
RelationCallbackMany = Callable[[list[Record]], Awaitable[list[Any]]]

OrderDirection = str  # "asc" | "desc"


class Operation(str, Enum):
    """Entity operations routed through the client."""

    FIND_MANY = "find_many"
    FIND_ONE = "find_one"
    CREATE = "create"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"
    CALL = "call"

    @property
    def is_read(self) -> bool:
        return self in (Operation.FIND_MANY, Operation.FIND_ONE)


@dataclass(frozen=True)
class FindManyArgs:
    """Arguments for find_many."""

    where: Mapping[str, Any] | None = None
    order_by: Mapping[str, OrderDirection] | None = None
    limit: int | None = None
    offset: int | None = None
    include: Mapping[str, RelationCallbackMany] | None = None
    # Canonical filter, populated by urpc.query.normalize_args
    filter: Filter | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.where is not None:
            d["where"] = dict(self.where)
        if self.order_by is not None:
            d["order_by"] = dict(self.order_by)
        if self.limit is not None:
            d["limit"] = self.limit
        if self.offset is not None:
            d["offset"] = self.offset
        return d


@dataclass(frozen=True)
class FindOneArgs:
    """Arguments for find_one."""

    where: Mapping[str, Any]
    include: Mapping[str, RelationCallbackSingle] | None = None
    filter: Filter | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {"where": dict(self.where)}


@dataclass(frozen=True)
class CreationArgs:
    """Arguments for create."""

    data: Mapping[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"data": dict(self.data)}


@dataclass(frozen=True)
class UpdateArgs:
    """Arguments for update."""

    where: Mapping[str, Any]
    data: Mapping[str, Any]
    filter: Filter | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {"where": dict(self.where), "data": dict(self.data)}


@dataclass(frozen=True)
class UpsertArgs:
    """Arguments for upsert: update the match or create a new record."""

    where: Mapping[str, Any]
    update: Mapping[str, Any]
    create: Mapping[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "where": dict(self.where),
            "update": dict(self.update),
            "create": dict(self.create),
        }


@dataclass(frozen=True)
class DeletionArgs:
    """Arguments for delete."""

    where: Mapping[str, Any]
    filter: Filter | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {"where": dict(self.where)}


@dataclass(frozen=True)
class CallArgs:
    """Free-form parameters for a custom adapter call."""

    params: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.params)


OperationArgs = Union[FindManyArgs, FindOneArgs, CreationArgs, UpdateArgs, UpsertArgs, DeletionArgs, CallArgs]


@dataclass(frozen=True)
class CallContext:
    """Request context for `call`.

    `request` holds whatever web-framework request object the caller has; it
    is passed through to the adapter untouched.
    """

    stream: bool = False
    request: Any = None
    extras: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StreamHandle:
    """Marker for streaming `call` results. Passed through opaquely."""

    handler: Callable[[Any], Awaitable[None]]
    is_stream: bool = True


@dataclass(frozen=True)
class EntityDefinition:
    """A named record shape with an optional declared field schema.

    `schema` maps field names to the Python type (or tuple of types) used to
    validate filter operands. Fields absent from the schema are unchecked.
    """

    name: str
    schema: Mapping[str, type | tuple[type, ...]] | None = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("entity name cannot be empty")


@dataclass(frozen=True)
class AdapterRegistration:
    """Binding of an adapter (instance or class) to an (entity, source) pair."""

    source: str
    entity: str
    adapter: Any


def is_stream_handle(value: Any) -> bool:
    """Check for the streaming marker without relying on the concrete class."""
    return getattr(value, "is_stream", False) is True


__all__ = [
    "Record",
    "RelationCallbackSingle",
    "RelationCallbackMany",
    "Operation",
    "FindManyArgs",
    "FindOneArgs",
    "CreationArgs",
    "UpdateArgs",
    "UpsertArgs",
    "DeletionArgs",
    "CallArgs",
    "OperationArgs",
    "CallContext",
    "StreamHandle",
    "EntityDefinition",
    "AdapterRegistration",
    "is_stream_handle",
]
