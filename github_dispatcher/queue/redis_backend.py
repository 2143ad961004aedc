"""Redis pub/sub subscription and list-backed work queue."""

from __future__ import annotations

import asyncio
from typing import Any

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from github_dispatcher.config import Settings
from github_dispatcher.errors import QueueConnectionError
from github_dispatcher.queue.base import Subscription, WorkQueue
from github_dispatcher.utils.logging import get_logger

log = get_logger(__name__)


class RedisQueue(WorkQueue):
    """RPUSH onto a Redis list; consumers LPOP from the head."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def append(self, queue_name: str, item: str) -> None:
        await self._client.rpush(queue_name, item)


class RedisSubscription(Subscription):
    def __init__(
        self,
        pubsub: Any,
        channel: str,
        reconnect_delay: float = 1.0,
    ) -> None:
        self._pubsub = pubsub
        self._channel = channel
        self._reconnect_delay = reconnect_delay
        self._closed = False

    @property
    def channel(self) -> str:
        return self._channel

    async def receive(self) -> str | bytes | None:
        while not self._closed:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=None
                )
            except RedisConnectionError as exc:
                # The pubsub re-subscribes its channels on the next connect
                log.warning(
                    "subscription_connection_lost",
                    channel=self._channel,
                    error=str(exc),
                    retry_in=self._reconnect_delay,
                )
                await asyncio.sleep(self._reconnect_delay)
                continue
            if message is None or message.get("type") not in ("message", b"message"):
                continue
            return message["data"]
        return None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe(self._channel)
        except RedisError as exc:
            log.warning("unsubscribe_failed", channel=self._channel, error=str(exc))
        await self._pubsub.aclose()
        log.info("unsubscribed", channel=self._channel)


class RedisBackend:
    """Owns the Redis client shared by the subscription and the work queue."""

    def __init__(self, client: redis.Redis, address: str = "") -> None:
        self._client = client
        self._address = address

    @classmethod
    def from_settings(cls, settings: Settings) -> RedisBackend:
        # Raw bytes: payload decoding happens per message in the dispatcher
        client = redis.Redis.from_url(settings.redis_url, decode_responses=False)
        return cls(client, address=settings.redis_address)

    async def connect(self) -> None:
        try:
            await self._client.ping()
        except RedisError as exc:
            raise QueueConnectionError(
                f"failed to connect to Redis at {self._address}: {exc}"
            ) from exc
        log.info("redis_connected", address=self._address)

    def queue(self) -> RedisQueue:
        return RedisQueue(self._client)

    async def subscribe(self, channel: str) -> RedisSubscription:
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(channel)
        except RedisError as exc:
            await pubsub.aclose()
            raise QueueConnectionError(
                f"failed to subscribe to channel '{channel}': {exc}"
            ) from exc
        log.info("subscribed", channel=channel)
        return RedisSubscription(pubsub, channel)

    async def close(self) -> None:
        await self._client.aclose()
