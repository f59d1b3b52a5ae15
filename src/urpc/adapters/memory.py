"""
In-memory adapter.

Suitable for testing and single-process use. One instance holds the rows of
one entity; the registry creates a fresh instance per entity when the class
is used as a global adapter.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any

from ..query import Filter, normalize_where, paginate, sort_records
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
from .base import BaseAdapter


def _filter_of(args: Any) -> Filter:
    if getattr(args, "filter", None) is not None:
        return args.filter
    return normalize_where(getattr(args, "where", None))


class MemoryAdapter(BaseAdapter):
    """Adapter that keeps records in a list guarded by an asyncio.Lock."""

    source_name = "memory"

    def __init__(self, records: list[Record] | None = None):
        self._records: list[Record] = [dict(r) for r in (records or [])]
        self._lock = asyncio.Lock()

    async def find_many(self, args: FindManyArgs) -> list[Record]:
        async with self._lock:
            flt = _filter_of(args)
            rows = [r for r in self._records if flt.matches(r)]
            rows = sort_records(rows, args.order_by)
            rows = paginate(rows, args.limit, args.offset)
            return [copy.deepcopy(r) for r in rows]

    async def find_one(self, args: FindOneArgs) -> Record | None:
        async with self._lock:
            flt = _filter_of(args)
            for record in self._records:
                if flt.matches(record):
                    return copy.deepcopy(record)
            return None

    async def create(self, args: CreationArgs) -> Record:
        async with self._lock:
            record = copy.deepcopy(dict(args.data))
            self._records.append(record)
            return copy.deepcopy(record)

    async def update(self, args: UpdateArgs) -> Record:
        async with self._lock:
            flt = _filter_of(args)
            for record in self._records:
                if flt.matches(record):
                    record.update(copy.deepcopy(dict(args.data)))
                    return copy.deepcopy(record)
            raise LookupError(f"No record matches {dict(args.where)!r}")

    async def delete(self, args: DeletionArgs) -> bool:
        async with self._lock:
            flt = _filter_of(args)
            for i, record in enumerate(self._records):
                if flt.matches(record):
                    del self._records[i]
                    return True
            return False

    async def call(self, args: CallArgs, ctx: CallContext | None = None) -> Any:
        """Supports `{"action": "count"}` and `{"action": "clear"}`."""
        action = args.params.get("action")
        async with self._lock:
            if action == "count":
                return {"count": len(self._records)}
            if action == "clear":
                removed = len(self._records)
                self._records.clear()
                return {"removed": removed}
        raise NotImplementedError(f"MemoryAdapter does not support call action {action!r}")

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["MemoryAdapter"]
