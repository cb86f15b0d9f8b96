"""RedisNotifier — pushes notification envelopes onto a Redis list.

Envelope: {"type": "<EVENT.NAME>", "data": {...}}. A downstream mailer
consumes the list; delivery and retries are its concern.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis

from config.settings import settings
from src.cl_common.redis_client import get_redis

logger = logging.getLogger(__name__)


class RedisNotifier:
    def __init__(
        self,
        queue_key: str | None = None,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
    ) -> None:
        self._queue_key = queue_key or settings.NOTIFICATION_QUEUE_KEY
        self._redis_factory = redis_factory

    async def send(self, event_name: str, payload: dict[str, Any]) -> None:
        if not event_name or not event_name.strip():
            raise ValueError("Notification type is required")
        if payload is None:
            raise ValueError("Notification payload is required")

        body = json.dumps({"type": event_name, "data": payload}, default=str)
        client = await self._redis_factory()
        try:
            await client.rpush(self._queue_key, body)
        except Exception:
            logger.exception("Failed to enqueue notification %s", event_name)
            raise
        logger.debug("Notification queued: %s -> %s", event_name, self._queue_key)
