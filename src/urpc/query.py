"""
Query argument translation.

Raw `where` mappings are validated and normalized into a canonical filter
tree before being handed to an adapter:

    {"age": {"$gte": 18}, "name": "ada"}
      -> Filter((Condition("age", Operator.GTE, 18),
                 Condition("name", Operator.EQ, "ada")))

`limit`/`offset` are validated only; truncation is the adapter's job. The
helpers at the bottom (`Filter.matches`, `sort_records`, `paginate`) are for
adapters without a native query engine.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from .errors import InvalidArgumentError
from .types import (
    DeletionArgs,
    FindManyArgs,
    FindOneArgs,
    Operation,
    UpdateArgs,
    UpsertArgs,
)

SchemaMap = Mapping[str, "type | tuple[type, ...]"]


class Operator(str, Enum):
    """Filter operators accepted in `where` operator objects."""

    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"

    @property
    def takes_sequence(self) -> bool:
        return self in (Operator.IN, Operator.NIN)


_OPERATORS = {op.value: op for op in Operator}


@dataclass(frozen=True)
class Condition:
    """A single `field <op> value` predicate."""

    field: str
    op: Operator
    value: Any

    def matches(self, record: Mapping[str, Any]) -> bool:
        actual = record.get(self.field)
        op = self.op
        if op is Operator.EQ:
            return actual == self.value
        if op is Operator.NE:
            return actual != self.value
        if op is Operator.IN:
            return actual in self.value
        if op is Operator.NIN:
            return actual not in self.value
        # Ordering comparisons never match missing values
        if actual is None:
            return False
        try:
            if op is Operator.GT:
                return actual > self.value
            if op is Operator.GTE:
                return actual >= self.value
            if op is Operator.LT:
                return actual < self.value
            return actual <= self.value
        except TypeError:
            return False


@dataclass(frozen=True)
class Filter:
    """Conjunction of conditions. An empty filter matches everything."""

    conditions: tuple[Condition, ...] = ()

    def matches(self, record: Mapping[str, Any]) -> bool:
        return all(c.matches(record) for c in self.conditions)

    def fields(self) -> list[str]:
        return [c.field for c in self.conditions]

    def __len__(self) -> int:
        return len(self.conditions)


# =============================================================================
# Validation
# =============================================================================


def _is_sequence(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return False
    return isinstance(value, (Sequence, Set))


def _is_scalar(value: Any) -> bool:
    return not isinstance(value, (Mapping, list, tuple, Set))


def _check_type(field: str, op: Operator, value: Any, schema: SchemaMap | None) -> None:
    if not schema or field not in schema or value is None:
        return
    expected = schema[field]
    types = expected if isinstance(expected, tuple) else (expected,)
    if isinstance(value, bool) and bool not in types:
        ok = False
    elif isinstance(value, int) and float in types:
        ok = True
    else:
        ok = isinstance(value, types)
    if not ok:
        names = ", ".join(t.__name__ for t in types)
        raise InvalidArgumentError(
            f"Operand for {field} {op.value} must be {names}, got {type(value).__name__}",
            argument="where",
        )


def _normalize_operand(field: str, op: Operator, value: Any, schema: SchemaMap | None) -> Any:
    if op.takes_sequence:
        if not _is_sequence(value):
            raise InvalidArgumentError(
                f"{op.value} on '{field}' requires a sequence value",
                argument="where",
            )
        items = tuple(value)
        for item in items:
            _check_type(field, op, item, schema)
        return items

    if not _is_scalar(value):
        raise InvalidArgumentError(
            f"{op.value} on '{field}' requires a scalar value",
            argument="where",
        )
    _check_type(field, op, value, schema)
    return value


def normalize_where(where: Mapping[str, Any] | None, schema: SchemaMap | None = None) -> Filter:
    """Validate a raw `where` mapping and return its canonical filter."""
    if where is None:
        return Filter()
    if not isinstance(where, Mapping):
        raise InvalidArgumentError("where must be a mapping", argument="where")

    conditions: list[Condition] = []
    for field_name, raw in where.items():
        if not isinstance(field_name, str) or not field_name:
            raise InvalidArgumentError(f"Invalid field name in where: {field_name!r}", argument="where")

        if isinstance(raw, Mapping) and raw:
            keys = list(raw.keys())
            dollar = [k for k in keys if isinstance(k, str) and k.startswith("$")]
            if dollar and len(dollar) != len(keys):
                raise InvalidArgumentError(
                    f"Cannot mix operators and plain keys for field '{field_name}'",
                    argument="where",
                )
            if dollar:
                for key in keys:
                    op = _OPERATORS.get(key)
                    if op is None:
                        raise InvalidArgumentError(
                            f"Unknown operator {key!r} for field '{field_name}'",
                            argument="where",
                        )
                    value = _normalize_operand(field_name, op, raw[key], schema)
                    conditions.append(Condition(field_name, op, value))
                continue

        # Literal value (JSON-valued columns compare as a whole)
        if _is_scalar(raw):
            _check_type(field_name, Operator.EQ, raw, schema)
        conditions.append(Condition(field_name, Operator.EQ, raw))

    return Filter(tuple(conditions))


def validate_order_by(order_by: Mapping[str, str] | None) -> dict[str, str] | None:
    """Validate ordering; returns a normalized (lower-cased) copy."""
    if order_by is None:
        return None
    if not isinstance(order_by, Mapping):
        raise InvalidArgumentError("order_by must be a mapping of field -> 'asc'|'desc'", argument="order_by")
    normalized: dict[str, str] = {}
    for field_name, direction in order_by.items():
        d = str(direction).lower()
        if d not in ("asc", "desc"):
            raise InvalidArgumentError(
                f"Invalid sort direction for '{field_name}': {direction!r}",
                argument="order_by",
            )
        normalized[field_name] = d
    return normalized


def validate_pagination(limit: int | None, offset: int | None) -> None:
    """Reject negative or non-integer pagination values."""
    for name, value in (("limit", limit), ("offset", offset)):
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArgumentError(f"{name} must be an integer", argument=name)
        if value < 0:
            raise InvalidArgumentError(f"{name} cannot be negative", argument=name)


def _check_include_keys(include: Mapping[str, Any] | None, schema: SchemaMap | None) -> None:
    if not include:
        return
    for key, callback in include.items():
        if not callable(callback):
            raise InvalidArgumentError(f"include '{key}' must be callable", argument="include")
        if schema and key in schema:
            raise InvalidArgumentError(
                f"include '{key}' collides with a declared field",
                argument="include",
            )


def _require_where(args: Any) -> None:
    # A missing filter would match every row
    if args.where is None:
        raise InvalidArgumentError(
            f"{type(args).__name__} requires a where filter",
            argument="where",
        )


def normalize_args(operation: Operation, args: Any, schema: SchemaMap | None = None) -> Any:
    """
    Validate operation arguments and populate their canonical filter.

    Returns a new args object; the caller's instance is left untouched.
    """
    if isinstance(args, FindManyArgs):
        validate_pagination(args.limit, args.offset)
        _check_include_keys(args.include, schema)
        return dataclasses.replace(
            args,
            order_by=validate_order_by(args.order_by),
            filter=normalize_where(args.where, schema),
        )
    if isinstance(args, FindOneArgs):
        _require_where(args)
        _check_include_keys(args.include, schema)
        return dataclasses.replace(args, filter=normalize_where(args.where, schema))
    if isinstance(args, (UpdateArgs, DeletionArgs)):
        _require_where(args)
        return dataclasses.replace(args, filter=normalize_where(args.where, schema))
    if isinstance(args, UpsertArgs):
        _require_where(args)
        normalize_where(args.where, schema)
        return args
    return args


# =============================================================================
# Adapter helpers
# =============================================================================


class _SortKey:
    """Orders None before everything else and tolerates mixed types."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __lt__(self, other: _SortKey) -> bool:
        a, b = self.value, other.value
        if a is None:
            return b is not None
        if b is None:
            return False
        try:
            return a < b
        except TypeError:
            return str(a) < str(b)


def sort_records(records: Iterable[Mapping[str, Any]], order_by: Mapping[str, str] | None) -> list:
    """
    Stable multi-key sort following `order_by` iteration order.

    The first key is the most significant. Implemented as successive stable
    sorts from the last key to the first.
    """
    result = list(records)
    if not order_by:
        return result
    for field_name, direction in reversed(list(order_by.items())):
        result.sort(
            key=lambda r, f=field_name: _SortKey(r.get(f)),
            reverse=str(direction).lower() == "desc",
        )
    return result


def paginate(records: Sequence[Any], limit: int | None = None, offset: int | None = None) -> list:
    start = offset or 0
    if limit is None:
        return list(records[start:])
    return list(records[start:start + limit])


__all__ = [
    "Operator",
    "Condition",
    "Filter",
    "normalize_where",
    "validate_order_by",
    "validate_pagination",
    "normalize_args",
    "sort_records",
    "paginate",
]
