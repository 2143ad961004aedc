"""Subscription loop: receive, dispatch, shut down."""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from enum import Enum

import structlog

from github_dispatcher.core.dispatcher import Dispatcher
from github_dispatcher.errors import DecodeError, EnqueueError, SerializeError
from github_dispatcher.queue.base import Subscription
from github_dispatcher.utils.logging import get_logger


class LoopState(str, Enum):
    STARTING = "starting"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass
class LoopStats:
    received: int = 0
    enqueued: int = 0
    ignored: int = 0
    failed: int = 0


class SubscriptionLoop:
    """Feeds subscription payloads to a Dispatcher one at a time.

    Each iteration waits on the next payload and the stop event together.
    Dispatch is awaited in place, so enqueue order matches arrival order and
    shutdown only takes effect between messages. A failing message is logged
    and never ends the loop.
    """

    def __init__(
        self,
        subscription: Subscription,
        dispatcher: Dispatcher,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._subscription = subscription
        self._dispatcher = dispatcher
        self._log = log if log is not None else get_logger(__name__)
        self._state = LoopState.STARTING
        self.stats = LoopStats()

    @property
    def state(self) -> LoopState:
        return self._state

    async def run(self, stop_event: asyncio.Event) -> None:
        channel = self._subscription.channel
        self._state = LoopState.LISTENING
        self._log.info("waiting_for_messages", channel=channel)

        stop_task = asyncio.create_task(stop_event.wait(), name="loop-stop")
        receive_task: asyncio.Task[str | bytes | None] | None = None
        try:
            while not stop_event.is_set():
                if receive_task is None:
                    receive_task = asyncio.create_task(
                        self._subscription.receive(), name="loop-receive"
                    )
                await asyncio.wait(
                    {receive_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if not receive_task.done():
                    break

                payload = receive_task.result()
                receive_task = None
                if payload is None:
                    self._log.info("subscription_ended", channel=channel)
                    break
                await self._handle(payload)
        finally:
            self._state = LoopState.SHUTTING_DOWN
            pending = [t for t in (receive_task, stop_task) if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            await self._subscription.close()
            self._state = LoopState.STOPPED
            self._log.info("loop_stopped", channel=channel, **asdict(self.stats))

    async def _handle(self, payload: str | bytes) -> None:
        channel = self._subscription.channel
        self.stats.received += 1
        self._log.debug("message_received", channel=channel, payload=payload)

        try:
            outcome = await self._dispatcher.dispatch(payload)
        except DecodeError as exc:
            self.stats.failed += 1
            self._log.error("payload_decode_failed", channel=channel, error=str(exc))
        except SerializeError as exc:
            self.stats.failed += 1
            self._log.error("rule_serialize_failed", channel=channel, error=str(exc))
        except EnqueueError as exc:
            self.stats.failed += 1
            self._log.error(
                "enqueue_failed",
                queue=exc.queue_name,
                repo=exc.repo,
                ref=exc.ref,
                error=str(exc.__cause__ or exc),
            )
        except Exception:
            self.stats.failed += 1
            self._log.exception("dispatch_error", channel=channel)
        else:
            if outcome.enqueued:
                self.stats.enqueued += 1
                self._log.info(
                    "rule_dispatched",
                    repo=outcome.event.repository_full_name,
                    ref=outcome.event.ref,
                    queue=outcome.queue_name,
                )
            else:
                self.stats.ignored += 1
