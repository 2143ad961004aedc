"""Event matching and dispatch pipeline."""

from .decoder import decode_push_event
from .dispatcher import Dispatcher, serialize_rule
from .loop import LoopState, LoopStats, SubscriptionLoop
from .matcher import find_match

__all__ = [
    "Dispatcher",
    "LoopState",
    "LoopStats",
    "SubscriptionLoop",
    "decode_push_event",
    "find_match",
    "serialize_rule",
]
