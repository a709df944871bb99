"""Unit tests for the Redis live-update broadcaster."""
from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from editorial_reminders.core.settings import RedisSettings
from editorial_reminders.infra.realtime import (
    RealtimeBroadcaster,
    conversation_topic,
    create_broadcaster,
)


@pytest.fixture
def redis_client() -> AsyncMock:
    client = AsyncMock()
    client.publish.return_value = 1
    return client


def test_conversation_topic():
    assert conversation_topic("c-1") == "conversation:c-1"


class TestRealtimeBroadcaster:
    """Tests for best-effort publishing."""

    @pytest.mark.asyncio
    async def test_without_redis_is_noop(self):
        broadcaster = RealtimeBroadcaster()

        assert broadcaster.enabled is False
        await broadcaster.broadcast("conversation:1", {"type": "new-message"})

    @pytest.mark.asyncio
    async def test_publishes_json_on_prefixed_channel(self, redis_client):
        broadcaster = RealtimeBroadcaster(redis_client, channel_prefix="editorial:")

        await broadcaster.broadcast("conversation:1", {"type": "new-message", "message": {"id": "m-1"}})

        channel, body = redis_client.publish.await_args.args
        assert channel == "editorial:conversation:1"
        assert json.loads(body) == {"type": "new-message", "message": {"id": "m-1"}}

    @pytest.mark.asyncio
    async def test_redis_error_is_swallowed(self, redis_client, caplog):
        redis_client.publish.side_effect = RedisConnectionError("connection refused")
        broadcaster = RealtimeBroadcaster(redis_client)

        with caplog.at_level("WARNING"):
            await broadcaster.broadcast("conversation:1", {"type": "new-message"})

        assert "Live update broadcast failed" in caplog.text

    @pytest.mark.asyncio
    async def test_slow_publish_times_out(self, redis_client):
        async def slow_publish(*args):
            await asyncio.sleep(1)

        redis_client.publish.side_effect = slow_publish
        broadcaster = RealtimeBroadcaster(redis_client, timeout=0.01)

        await broadcaster.broadcast("conversation:1", {"type": "new-message"})

    @pytest.mark.asyncio
    async def test_close_releases_client(self, redis_client):
        broadcaster = RealtimeBroadcaster(redis_client)

        await broadcaster.close()

        redis_client.aclose.assert_awaited_once()
        assert broadcaster.enabled is False


def test_create_broadcaster_without_redis(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("REDIS_HOST", raising=False)

    assert create_broadcaster(RedisSettings()).enabled is False


def test_create_broadcaster_with_url():
    broadcaster = create_broadcaster(RedisSettings(REDIS_URL="redis://cache:6379/0", key_prefix="journal:"))

    assert broadcaster.enabled is True
