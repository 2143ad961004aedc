"""Abstract queue and subscription interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod


class WorkQueue(ABC):
    """Named FIFO lists: producers append at the tail, consumers pop the head."""

    @abstractmethod
    async def append(self, queue_name: str, item: str) -> None: ...


class Subscription(ABC):
    """A one-shot feed of raw payloads from a pub/sub channel."""

    @property
    @abstractmethod
    def channel(self) -> str: ...

    @abstractmethod
    async def receive(self) -> str | bytes | None:
        """Wait for the next payload. Returns None once the feed has ended.

        Payloads may arrive as undecoded bytes; decoding belongs to the
        dispatcher so a bad message fails alone.
        """
        ...

    @abstractmethod
    async def close(self) -> None: ...
