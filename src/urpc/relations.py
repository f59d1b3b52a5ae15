"""
Relation resolution for `include` callbacks.

Includes are resolved once per top-level call, after the base fetch and the
middleware pipeline have produced their result. Callbacks run sequentially
in authoring order; the first failure aborts the whole resolution.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from .errors import RelationResolutionError
from .types import Record, RelationCallbackMany, RelationCallbackSingle


async def _invoke(key: str, callback: Any, value: Any) -> Any:
    try:
        result = callback(value)
        if inspect.isawaitable(result):
            result = await result
        return result
    except Exception as e:
        raise RelationResolutionError(include_key=key, cause=e) from e


async def resolve_one(
    row: Record | None,
    include: Mapping[str, RelationCallbackSingle] | None,
) -> Record | None:
    """Attach each include's result to a single row.

    Returns a new row; `None` rows are returned as-is without invoking callbacks.
    """
    if row is None or not include:
        return row
    resolved = dict(row)
    for key, callback in include.items():
        resolved[key] = await _invoke(key, callback, row)
    return resolved


async def resolve_many(
    rows: list[Record],
    include: Mapping[str, RelationCallbackMany] | None,
) -> list[Record]:
    """Attach include results positionally to a list of rows.

    Each callback is invoked exactly once with the full row list and must
    return one item per row, in the same order.
    """
    if not include:
        return rows
    resolved = [dict(r) for r in rows]
    for key, callback in include.items():
        related = await _invoke(key, callback, list(rows))
        if not isinstance(related, Sequence) or isinstance(related, (str, bytes)):
            raise RelationResolutionError(
                f"include '{key}' must return a sequence, got {type(related).__name__}",
                include_key=key,
            )
        if len(related) != len(rows):
            raise RelationResolutionError(
                f"include '{key}' returned {len(related)} items for {len(rows)} rows",
                include_key=key,
            )
        for target, value in zip(resolved, related):
            target[key] = value
    return resolved


# =============================================================================
# Key-based joins
# =============================================================================


class _Readable(Protocol):
    async def find_one(self, args: Any = None, **kwargs: Any) -> Any: ...

    async def find_many(self, args: Any = None, **kwargs: Any) -> Any: ...


def join_one(repo: _Readable, local_field: str, foreign_field: str) -> RelationCallbackSingle:
    """Build a single-row include that looks up `foreign_field == row[local_field]`."""

    async def resolve(row: Record) -> Any:
        key = row.get(local_field)
        if key is None:
            return None
        return await repo.find_one(where={foreign_field: key})

    return resolve


def join_many(
    repo: _Readable,
    local_field: str,
    foreign_field: str,
    many: bool = False,
) -> RelationCallbackMany:
    """Build a multi-row include backed by one `$in` query.

    With `many=False` each row gets the first match (or None); with
    `many=True` each row gets the list of all matches.
    """

    async def resolve(rows: list[Record]) -> list[Any]:
        keys: list[Any] = []
        for row in rows:
            key = row.get(local_field)
            if key is not None and key not in keys:
                keys.append(key)

        index: dict[Any, list[Any]] = {}
        if keys:
            related = await repo.find_many(where={foreign_field: {"$in": keys}})
            for item in related:
                index.setdefault(item.get(foreign_field), []).append(item)

        if many:
            return [list(index.get(row.get(local_field), [])) for row in rows]
        return [
            (index.get(row.get(local_field)) or [None])[0]
            for row in rows
        ]

    return resolve


__all__ = ["resolve_one", "resolve_many", "join_one", "join_many"]
