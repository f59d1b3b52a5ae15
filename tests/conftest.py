"""
Shared test fixtures and fakes for urpc tests.

This module provides:
- A counting adapter that records every call it receives
- Clients wired with MemoryAdapter through plugins and entity configs
- Sample user/post records
- A fake asyncpg-style connection for provisioning tests
- Remote transports for timeout and wire tests
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from urpc.adapters import BaseAdapter, MemoryAdapter
from urpc.client import URPCClient
from urpc.config import ClientConfig, EntityConfig
from urpc.plugins import StaticPlugin
from urpc.remote import RemoteRequest, RemoteTransport
from urpc.types import CallArgs, CallContext, CreationArgs, FindManyArgs, FindOneArgs

# =============================================================================
# Sample Data
# =============================================================================


USERS = [
    {"id": 1, "name": "ada", "age": 36, "team": "core"},
    {"id": 2, "name": "grace", "age": 45, "team": "core"},
    {"id": 3, "name": "linus", "age": 28, "team": "kernel"},
    {"id": 4, "name": "barbara", "age": None, "team": "kernel"},
]

POSTS = [
    {"id": 10, "author_id": 1, "title": "Notes on the engine"},
    {"id": 11, "author_id": 1, "title": "Bernoulli numbers"},
    {"id": 12, "author_id": 3, "title": "Just a hobby"},
]


# =============================================================================
# Fake Adapters
# =============================================================================


class CountingAdapter(BaseAdapter):
    """Adapter that records calls and returns canned values."""

    source_name = "counting"

    def __init__(self, rows: list[dict] | None = None):
        self.rows = list(rows or [])
        self.calls: list[tuple[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def find_many(self, args: FindManyArgs) -> list[dict]:
        self.calls.append(("find_many", args))
        return [dict(r) for r in self.rows]

    async def find_one(self, args: FindOneArgs) -> dict | None:
        self.calls.append(("find_one", args))
        return dict(self.rows[0]) if self.rows else None

    async def create(self, args: CreationArgs) -> dict:
        self.calls.append(("create", args))
        return dict(args.data)

    async def call(self, args: CallArgs, ctx: CallContext | None = None) -> Any:
        self.calls.append(("call", args))
        return {"params": dict(args.params), "stream": bool(ctx and ctx.stream)}


@pytest.fixture
def counting_adapter():
    return CountingAdapter(rows=[{"id": 1, "name": "ada"}])


# =============================================================================
# Clients
# =============================================================================


def make_client(**kwargs: Any) -> URPCClient:
    """Client with `user` and `post` entities backed by MemoryAdapter."""
    kwargs.setdefault("plugins", [StaticPlugin("demo", entities=["user", "post"])])
    kwargs.setdefault(
        "entity_configs",
        {
            "user": EntityConfig(default_source="memory"),
            "post": EntityConfig(default_source="memory"),
        },
    )
    kwargs.setdefault("global_adapters", [MemoryAdapter])
    transport = kwargs.pop("transport", None)
    return URPCClient(ClientConfig(**kwargs), transport=transport)


@pytest.fixture
def client():
    return make_client()


@pytest.fixture
def seeded_client():
    client = make_client()
    client.registry.register("memory", "user", MemoryAdapter(USERS))
    client.registry.register("memory", "post", MemoryAdapter(POSTS))
    return client


# =============================================================================
# Remote Transports
# =============================================================================


class RecordingTransport(RemoteTransport):
    """Returns canned results and records each request."""

    def __init__(self, result: Any = None):
        self.result = result
        self.requests: list[RemoteRequest] = []
        self.closed = False

    async def send(self, request: RemoteRequest) -> Any:
        self.requests.append(request)
        return self.result

    async def close(self) -> None:
        self.closed = True


class SlowTransport(RemoteTransport):
    """Sleeps before answering; records whether it completed or was cancelled."""

    def __init__(self, delay: float, result: Any = "stale"):
        self.delay = delay
        self.result = result
        self.completed = False
        self.cancelled = False

    async def send(self, request: RemoteRequest) -> Any:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        self.completed = True
        return self.result


# =============================================================================
# Fake Database Connection
# =============================================================================


class FakeConnection:
    """Minimal asyncpg.Connection stand-in that tracks created tables."""

    def __init__(self, tables: set[tuple[str, str]] | None = None, fail_on: dict[str, Exception] | None = None):
        self.tables = tables if tables is not None else set()
        self.fail_on = fail_on or {}
        self.executed: list[str] = []
        self.closed = False

    async def fetchval(self, query: str, schema: str, table: str) -> bool:
        return (schema, table) in self.tables

    async def execute(self, sql: str) -> str:
        self.executed.append(sql)
        for needle, error in self.fail_on.items():
            if needle in sql:
                raise error
        if sql.startswith("CREATE TABLE"):
            qualified = sql.split("(", 1)[0].replace("CREATE TABLE", "").strip()
            schema, table = (part.strip('"') for part in qualified.split("."))
            self.tables.add((schema, table))
        return "OK"

    async def close(self) -> None:
        self.closed = True


class FakeDatabase:
    """Connection factory sharing table state across runs."""

    def __init__(self, fail_on: dict[str, Exception] | None = None):
        self.tables: set[tuple[str, str]] = set()
        self.fail_on = fail_on or {}
        self.connections: list[FakeConnection] = []
        self.dsns: list[str] = []

    async def connect(self, dsn: str, **kwargs: Any) -> FakeConnection:
        self.dsns.append(dsn)
        conn = FakeConnection(self.tables, self.fail_on)
        self.connections.append(conn)
        return conn


@pytest.fixture
def fake_db():
    return FakeDatabase()
