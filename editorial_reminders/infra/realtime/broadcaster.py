"""Best-effort live-update broadcasting over Redis PubSub.

The web tier subscribes to ``<prefix>conversation:<id>`` channels and relays
messages to connected clients. Publishing from workers is fire-and-continue:
a failed or slow publish is logged and never surfaces to the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from editorial_reminders.core.settings import get_redis_settings

if TYPE_CHECKING:
    from editorial_reminders.core.settings.redis import RedisSettings

logger = logging.getLogger(__name__)


def conversation_topic(conversation_id: Any) -> str:
    return f"conversation:{conversation_id}"


class RealtimeBroadcaster:
    """Publishes JSON payloads to Redis channels.

    Without a Redis client the broadcaster is a logged no-op, which keeps
    local development and tests free of a Redis dependency.

    Example:
        broadcaster = get_broadcaster()
        await broadcaster.broadcast(
            conversation_topic(conversation_id),
            {"type": "new-message", "message": payload},
        )
    """

    def __init__(
        self,
        redis_client: Redis | None = None,
        *,
        channel_prefix: str = "",
        timeout: float = 5.0,
    ) -> None:
        self._redis = redis_client
        self._channel_prefix = channel_prefix
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def broadcast(self, topic: str, payload: dict[str, Any]) -> None:
        """Publish ``payload`` on ``topic``. Errors are logged, never raised."""
        if self._redis is None:
            logger.debug("Broadcast skipped, no Redis configured", extra={"topic": topic})
            return

        channel = f"{self._channel_prefix}{topic}"
        try:
            async with asyncio.timeout(self._timeout):
                receivers = await self._redis.publish(channel, json.dumps(payload, default=str))
        except (RedisError, OSError, TimeoutError) as e:
            logger.warning(
                "Live update broadcast failed",
                extra={"channel": channel, "error": str(e), "operation": "realtime.broadcast"},
            )
            return

        logger.debug(
            "Live update broadcast",
            extra={"channel": channel, "receivers": receivers},
        )

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


_broadcaster: RealtimeBroadcaster | None = None


def create_broadcaster(settings: RedisSettings | None = None) -> RealtimeBroadcaster:
    """Build a broadcaster from Redis settings; local-only when Redis is unconfigured."""
    redis_settings = settings or get_redis_settings()
    if not redis_settings.is_configured:
        logger.info("Realtime broadcaster running without Redis")
        return RealtimeBroadcaster()

    pool = ConnectionPool.from_url(
        redis_settings.url,
        **redis_settings.connection_pool_kwargs(),
    )
    return RealtimeBroadcaster(
        Redis(connection_pool=pool),
        channel_prefix=redis_settings.key_prefix,
        timeout=redis_settings.socket_timeout,
    )


def get_broadcaster() -> RealtimeBroadcaster:
    """Return the process-wide broadcaster, creating it on first use."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = create_broadcaster()
    return _broadcaster


async def stop_broadcaster() -> None:
    """Close the process-wide broadcaster's Redis connection."""
    global _broadcaster
    if _broadcaster is not None:
        await _broadcaster.close()
        _broadcaster = None
        logger.info("Realtime broadcaster stopped")
