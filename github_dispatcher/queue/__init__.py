"""Queue and subscription backends."""

from github_dispatcher.queue.base import Subscription, WorkQueue
from github_dispatcher.queue.memory import MemoryQueue, MemorySubscription
from github_dispatcher.queue.redis_backend import RedisBackend, RedisQueue, RedisSubscription

__all__ = [
    "Subscription",
    "WorkQueue",
    "MemoryQueue",
    "MemorySubscription",
    "RedisBackend",
    "RedisQueue",
    "RedisSubscription",
]
