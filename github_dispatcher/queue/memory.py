"""In-process queue and subscription, used for dry runs and tests."""

from __future__ import annotations

import asyncio

import structlog

from github_dispatcher.queue.base import Subscription, WorkQueue
from github_dispatcher.utils.logging import get_logger


class MemoryQueue(WorkQueue):
    """Records appended items per queue name in append order."""

    def __init__(self, log: structlog.stdlib.BoundLogger | None = None) -> None:
        self._items: dict[str, list[str]] = {}
        self._log = log if log is not None else get_logger(__name__)

    async def append(self, queue_name: str, item: str) -> None:
        self._items.setdefault(queue_name, []).append(item)
        self._log.info("queue_append_recorded", queue=queue_name, item=item)

    def items(self, queue_name: str) -> list[str]:
        return list(self._items.get(queue_name, []))

    def pop(self, queue_name: str) -> str | None:
        """Remove and return the head item, like LPOP."""
        items = self._items.get(queue_name)
        if not items:
            return None
        return items.pop(0)


_CLOSED = object()


class MemorySubscription(Subscription):
    def __init__(self, channel: str = "memory") -> None:
        self._channel = channel
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._ended = False

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, payload: str | bytes) -> None:
        if self._closed:
            raise RuntimeError(f"subscription '{self._channel}' is closed")
        self._queue.put_nowait(payload)

    def end(self) -> None:
        """Mark the end of the feed; receive() returns None after queued payloads."""
        self._queue.put_nowait(_CLOSED)

    async def receive(self) -> str | bytes | None:
        if self._closed or self._ended:
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            self._ended = True
            return None
        return item  # type: ignore[return-value]

    async def close(self) -> None:
        self._closed = True
