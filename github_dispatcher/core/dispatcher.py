"""Per-payload decode, match and enqueue."""

from __future__ import annotations

import json
from collections.abc import Sequence

import structlog

from github_dispatcher.core.decoder import decode_push_event
from github_dispatcher.core.matcher import find_match
from github_dispatcher.errors import EnqueueError, SerializeError
from github_dispatcher.models import DispatchOutcome, DispatchStatus, FilterRule
from github_dispatcher.queue.base import WorkQueue
from github_dispatcher.utils.logging import get_logger


def serialize_rule(rule: FilterRule) -> str:
    """Encode a rule as the compact JSON item pushed to the work queue."""
    try:
        return json.dumps(rule.to_dict(), separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise SerializeError(f"failed to serialize rule for {rule.repo}@{rule.branch}: {exc}") from exc


class Dispatcher:
    """Turns one webhook payload into at most one work queue append.

    The matched rule itself is forwarded, not the event, so the consumer gets
    the command list and directory hint.
    """

    def __init__(
        self,
        rules: Sequence[FilterRule],
        queue: WorkQueue,
        queue_name: str,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._rules = rules
        self._queue = queue
        self._queue_name = queue_name
        self._log = log if log is not None else get_logger(__name__)

    @property
    def queue_name(self) -> str:
        return self._queue_name

    async def dispatch(self, payload: str | bytes) -> DispatchOutcome:
        """Raises DecodeError, SerializeError or EnqueueError on failure."""
        event = decode_push_event(payload)
        repo = event.repository_full_name
        ref = event.ref
        self._log.debug("push_event_decoded", repo=repo, ref=ref)

        rule = find_match(self._rules, repo, ref)
        if rule is None:
            self._log.debug("no_matching_rule", repo=repo, ref=ref)
            return DispatchOutcome(
                status=DispatchStatus.NO_MATCH,
                event=event,
                queue_name=self._queue_name,
            )

        self._log.debug("rule_matched", repo=rule.repo, ref=rule.branch, type=rule.type)
        item = serialize_rule(rule)

        try:
            await self._queue.append(self._queue_name, item)
        except Exception as exc:
            raise EnqueueError(
                f"failed to push to queue '{self._queue_name}': {exc}",
                queue_name=self._queue_name,
                repo=repo,
                ref=ref,
            ) from exc

        self._log.debug("rule_enqueued", queue=self._queue_name, repo=repo, ref=ref, item=item)
        return DispatchOutcome(
            status=DispatchStatus.ENQUEUED,
            event=event,
            queue_name=self._queue_name,
            rule=rule,
            item=item,
        )
