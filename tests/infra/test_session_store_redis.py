"""Testes para RedisSessionStore (cliente redis.asyncio mockado)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from lembre_ai.domain.draft import Draft
from lembre_ai.domain.session import ConversationSession
from lembre_ai.infra.session_store import RedisSessionStore, SessionStoreError


@pytest.fixture()
def redis_client() -> AsyncMock:
    return AsyncMock()


class TestRedisSessionStore:
    @pytest.mark.asyncio
    async def test_save_without_ttl_uses_set(self, redis_client: AsyncMock) -> None:
        store = RedisSessionStore(redis_client)
        await store.save(ConversationSession(conversation_id="5511"))

        key, payload = redis_client.set.await_args.args
        assert key == "lembre_ai:session:5511"
        assert '"conversation_id":"5511"' in payload
        redis_client.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_with_ttl_uses_setex(self, redis_client: AsyncMock) -> None:
        store = RedisSessionStore(redis_client, ttl_seconds=600)
        await store.save(ConversationSession(conversation_id="5511"))

        key, ttl, _ = redis_client.setex.await_args.args
        assert (key, ttl) == ("lembre_ai:session:5511", 600)

    @pytest.mark.asyncio
    async def test_get_roundtrip(self, redis_client: AsyncMock) -> None:
        session = ConversationSession(
            conversation_id="5511", draft=Draft(validade="2027-01-10"), reminder_id="rem-1"
        )
        redis_client.get.return_value = session.model_dump_json().encode("utf-8")

        loaded = await RedisSessionStore(redis_client).get("5511")

        assert loaded is not None
        assert loaded.draft.validade == "2027-01-10"
        assert loaded.reminder_id == "rem-1"

    @pytest.mark.asyncio
    async def test_get_missing(self, redis_client: AsyncMock) -> None:
        redis_client.get.return_value = None
        assert await RedisSessionStore(redis_client).get("5511") is None

    @pytest.mark.asyncio
    async def test_delete(self, redis_client: AsyncMock) -> None:
        redis_client.delete.return_value = 1
        assert await RedisSessionStore(redis_client).delete("5511") is True
        redis_client.delete.assert_awaited_once_with("lembre_ai:session:5511")

    @pytest.mark.asyncio
    async def test_errors_are_wrapped(self, redis_client: AsyncMock) -> None:
        redis_client.get.side_effect = ConnectionError("down")
        with pytest.raises(SessionStoreError):
            await RedisSessionStore(redis_client).get("5511")
