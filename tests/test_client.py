"""
Tests for the client dispatch router and repositories.
"""

from __future__ import annotations

import pytest

import urpc
from urpc.adapters import MemoryAdapter
from urpc.client import URPCClient
from urpc.config import ClientConfig, EntityConfig, RemoteConfig
from urpc.errors import (
    AdapterNotFoundError,
    ConfigError,
    InvalidArgumentError,
    NoSourceConfiguredError,
    RelationResolutionError,
)
from urpc.middleware import FunctionMiddleware, MiddlewareOptions
from urpc.plugins import StaticPlugin
from urpc.types import (
    CallContext,
    FindManyArgs,
    FindOneArgs,
    Operation,
    StreamHandle,
    UpsertArgs,
)

from conftest import CountingAdapter, RecordingTransport, make_client


class TestLocalDispatch:
    """Test operations served by local adapters."""

    @pytest.mark.asyncio
    async def test_create_then_find_one_round_trip(self, client):
        users = client.repo("user")

        created = await users.create(data={"id": 7, "name": "hopper", "tags": ["navy"]})
        found = await users.find_one(where={"id": 7})

        assert found == created == {"id": 7, "name": "hopper", "tags": ["navy"]}

    @pytest.mark.asyncio
    async def test_find_many_filter_sort_paginate(self, seeded_client):
        users = seeded_client.repo("user")

        rows = await users.find_many(
            FindManyArgs(where={"team": "core"}, order_by={"age": "desc"}, limit=1)
        )

        assert [r["name"] for r in rows] == ["grace"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, seeded_client):
        users = seeded_client.repo("user")

        updated = await users.update(where={"id": 3}, data={"team": "core"})
        deleted = await users.delete(where={"id": 4})

        assert updated["team"] == "core"
        assert deleted is True
        assert await users.find_one(where={"id": 4}) is None

    @pytest.mark.asyncio
    async def test_upsert_updates_existing(self, seeded_client):
        users = seeded_client.repo("user")

        result = await users.upsert(UpsertArgs(where={"id": 1}, update={"age": 37}, create={"id": 1}))

        assert result["age"] == 37
        assert len(await users.find_many(where={"id": 1})) == 1

    @pytest.mark.asyncio
    async def test_upsert_creates_missing(self, client):
        users = client.repo("user")

        result = await users.upsert(where={"id": 9}, update={"age": 1}, create={"id": 9, "name": "new"})

        assert result == {"id": 9, "name": "new"}

    @pytest.mark.asyncio
    async def test_explicit_source(self, counting_adapter):
        client = make_client()
        client.registry.register("counting", "user", counting_adapter)

        rows = await client.repo("user", source="counting").find_many()

        assert rows == [{"id": 1, "name": "ada"}]
        assert counting_adapter.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_arguments_rejected_before_adapter(self, counting_adapter):
        client = make_client()
        client.registry.register("counting", "user", counting_adapter)

        with pytest.raises(InvalidArgumentError):
            await client.repo("user", source="counting").find_many(limit=-1)

        assert counting_adapter.call_count == 0

    @pytest.mark.asyncio
    async def test_args_and_keywords_are_exclusive(self, client):
        with pytest.raises(InvalidArgumentError, match="not both"):
            await client.repo("user").find_many(FindManyArgs(), limit=1)

    @pytest.mark.asyncio
    async def test_delete_without_where_rejected(self, seeded_client):
        users = seeded_client.repo("user")

        with pytest.raises(InvalidArgumentError, match="requires a where filter"):
            await users.delete(where=None)
        with pytest.raises(InvalidArgumentError, match="requires a where filter"):
            await users.update(where=None, data={"team": "ops"})

        rows = await users.find_many(order_by={"id": "asc"})
        assert [r["id"] for r in rows] == [1, 2, 3, 4]
        assert {r["team"] for r in rows} == {"core", "kernel"}

    @pytest.mark.asyncio
    async def test_unknown_operation(self, client):
        with pytest.raises(InvalidArgumentError, match="Unknown operation") as exc_info:
            await client.dispatch("user", "frobnicate")

        assert exc_info.value.argument == "operation"

    @pytest.mark.asyncio
    async def test_find_one_requires_args(self, client):
        with pytest.raises(InvalidArgumentError, match="requires arguments"):
            await client.dispatch("user", Operation.FIND_ONE)


class TestCall:
    """Test custom adapter calls."""

    @pytest.mark.asyncio
    async def test_call_passes_params_and_context(self, counting_adapter):
        client = make_client()
        client.registry.register("counting", "user", counting_adapter)

        result = await client.repo("user", source="counting").call(
            {"action": "sync"}, CallContext(stream=True), force=True
        )

        assert result == {"params": {"action": "sync", "force": True}, "stream": True}

    @pytest.mark.asyncio
    async def test_stream_handle_passes_through(self):
        handle = StreamHandle(handler=lambda sink: None)

        class Streaming(CountingAdapter):
            async def call(self, args, ctx=None):
                return handle

        client = make_client()
        client.registry.register("stream", "user", Streaming())

        assert await client.repo("user", source="stream").call() is handle

    @pytest.mark.asyncio
    async def test_memory_adapter_count(self, seeded_client):
        assert await seeded_client.repo("user").call(action="count") == {"count": 4}


class TestRouting:
    """Test routing failures."""

    @pytest.mark.asyncio
    async def test_unknown_entity_without_remote(self, client):
        with pytest.raises(NoSourceConfiguredError):
            await client.repo("invoice").find_many()

    @pytest.mark.asyncio
    async def test_configured_source_without_adapter(self):
        client = URPCClient(ClientConfig(entity_configs={"invoice": EntityConfig(default_source="sql")}))

        with pytest.raises(NoSourceConfiguredError):
            await client.repo("invoice").find_many()

    @pytest.mark.asyncio
    async def test_missing_source_for_known_entity(self, client):
        """An entity with adapters reports the missing pair."""
        with pytest.raises(AdapterNotFoundError) as exc_info:
            await client.repo("user", source="sql").find_many()

        assert exc_info.value.source == "sql"


class TestMiddlewareIntegration:
    """Test that local dispatch runs through the pipeline."""

    @pytest.mark.asyncio
    async def test_short_circuit_prevents_adapter_call(self, counting_adapter):
        async def block(ctx, next):
            return []

        client = make_client(middlewares=[FunctionMiddleware("block", block)])
        client.registry.register("counting", "user", counting_adapter)

        assert await client.repo("user", source="counting").find_many() == []
        assert counting_adapter.call_count == 0

    @pytest.mark.asyncio
    async def test_context_metadata(self, seeded_client):
        seen = {}

        async def spy(ctx, next):
            seen.update(entity=ctx.entity, source=ctx.metadata.source, locale=ctx.metadata.locale)
            seen["operation"] = ctx.operation
            return await next()

        seeded_client.middleware.use(spy, MiddlewareOptions(name="spy"))
        await seeded_client.repo("user", locale="de").find_one(where={"id": 1})

        assert seen == {"entity": "user", "source": "memory", "locale": "de", "operation": Operation.FIND_ONE}

    @pytest.mark.asyncio
    async def test_before_middleware_can_rewrite_args(self, seeded_client):
        async def only_core(ctx, next):
            ctx.args = FindManyArgs(where={"team": "core"})
            return await next()

        seeded_client.middleware.use(only_core, MiddlewareOptions(name="only_core"))

        rows = await seeded_client.repo("user").find_many()

        assert {r["team"] for r in rows} == {"core"}

    @pytest.mark.asyncio
    async def test_includes_resolved_after_pipeline(self, seeded_client):
        """After middleware sees raw rows; includes are attached afterwards."""
        seen_keys = []

        async def after(ctx, next):
            result = await next()
            seen_keys.append(set(result[0]))
            return result

        seeded_client.middleware.use(after, MiddlewareOptions(name="after", position="after"))
        calls = 0

        async def tags(rows):
            nonlocal calls
            calls += 1
            return [[r["team"]] for r in rows]

        rows = await seeded_client.repo("user").find_many(order_by={"id": "asc"}, include={"tags": tags})

        assert calls == 1
        assert [r["tags"] for r in rows] == [["core"], ["core"], ["kernel"], ["kernel"]]
        assert "tags" not in seen_keys[0]


class TestIncludes:
    """Test include resolution through dispatch."""

    @pytest.mark.asyncio
    async def test_find_one_include(self, seeded_client):
        posts = seeded_client.repo("post")

        async def user_posts(user):
            return await posts.find_many(where={"author_id": user["id"]})

        user = await seeded_client.repo("user").find_one(FindOneArgs(where={"id": 1}, include={"posts": user_posts}))

        assert len(user["posts"]) == 2

    @pytest.mark.asyncio
    async def test_include_failure(self, seeded_client):
        async def broken(rows):
            raise RuntimeError("db down")

        with pytest.raises(RelationResolutionError) as exc_info:
            await seeded_client.repo("user").find_many(include={"broken": broken})

        assert exc_info.value.include_key == "broken"


class TestDefaultClient:
    """Test module-level init/repo helpers."""

    @pytest.mark.asyncio
    async def test_init_and_repo(self):
        urpc.init(
            plugins=[StaticPlugin("todos", entities=["todo"])],
            entity_configs={"todo": {"default_source": "memory"}},
            global_adapters=[MemoryAdapter],
        )
        try:
            await urpc.repo("todo").create(data={"id": 1, "title": "write docs"})
            assert await urpc.repo("todo").find_one(where={"id": 1}) == {"id": 1, "title": "write docs"}
        finally:
            await urpc.shutdown()

    def test_get_client_requires_init(self):
        with pytest.raises(ConfigError, match="not initialized"):
            urpc.get_client()

    def test_remote_transport_requires_base_url(self):
        client = URPCClient(ClientConfig(remote=RemoteConfig()))

        assert client.remote_enabled is False
        with pytest.raises(ConfigError):
            client.transport

    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self):
        transport = RecordingTransport()

        async with URPCClient(transport=transport) as client:
            assert client.remote_enabled

        assert transport.closed
