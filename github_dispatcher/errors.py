"""Exception types raised by the dispatcher."""

from __future__ import annotations


class DispatcherError(Exception):
    """Base class for dispatcher errors."""


class DecodeError(DispatcherError):
    """Webhook payload is malformed or has the wrong shape."""


class SerializeError(DispatcherError):
    """A matched rule could not be encoded for the queue."""


class EnqueueError(DispatcherError):
    """Appending to the work queue failed."""

    def __init__(self, message: str, *, queue_name: str, repo: str = "", ref: str = "") -> None:
        super().__init__(message)
        self.queue_name = queue_name
        self.repo = repo
        self.ref = ref


class RuleLoadError(DispatcherError):
    """The filter rule file could not be read or validated."""


class QueueConnectionError(DispatcherError):
    """The queue backend could not be reached."""
