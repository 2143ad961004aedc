"""github-dispatcher entry point - wires everything together and runs the loop."""

from __future__ import annotations

import asyncio
import signal
import sys

import click
from pydantic import ValidationError

from github_dispatcher import __version__
from github_dispatcher.config import Settings, load_settings
from github_dispatcher.core.dispatcher import Dispatcher
from github_dispatcher.core.loop import SubscriptionLoop
from github_dispatcher.errors import DispatcherError
from github_dispatcher.models import FilterRule
from github_dispatcher.queue.base import Subscription, WorkQueue
from github_dispatcher.queue.memory import MemoryQueue
from github_dispatcher.queue.redis_backend import RedisBackend
from github_dispatcher.rules import load_filter_rules
from github_dispatcher.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


class DispatcherApp:
    """Owns the Redis backend, the subscription and the loop for one process."""

    def __init__(
        self,
        settings: Settings,
        rules: list[FilterRule],
        backend: RedisBackend,
        dry_run: bool = False,
    ) -> None:
        self.settings = settings
        self.rules = rules
        self.backend = backend
        self.dry_run = dry_run

        self.subscription: Subscription | None = None
        self.loop: SubscriptionLoop | None = None

    async def start(self) -> None:
        await self.backend.connect()

        queue: WorkQueue
        if self.dry_run:
            log.info("dry_run_enabled", queue=self.settings.pipeline_queue_name)
            queue = MemoryQueue(log=get_logger("github_dispatcher.dry_run"))
        else:
            queue = self.backend.queue()

        self.subscription = await self.backend.subscribe(self.settings.redis_channel)
        dispatcher = Dispatcher(
            self.rules,
            queue,
            self.settings.pipeline_queue_name,
            log=get_logger("github_dispatcher.dispatcher"),
        )
        self.loop = SubscriptionLoop(
            self.subscription,
            dispatcher,
            log=get_logger("github_dispatcher.loop"),
        )

    async def serve(self, stop_event: asyncio.Event) -> None:
        if self.loop is None:
            raise RuntimeError("DispatcherApp.start() must be called before serve()")
        await self.loop.run(stop_event)

    async def stop(self) -> None:
        # The loop closes the subscription on exit; this covers a failed start
        if self.subscription is not None:
            await self.subscription.close()
        await self.backend.close()
        log.info("dispatcher_stopped")


async def run(settings: Settings, dry_run: bool = False) -> None:
    log.info("dispatcher_starting", version=__version__)
    log.info(
        "configuration",
        redis=settings.redis_address,
        channel=settings.redis_channel,
        config_file=settings.config_file_path,
        pipeline_queue=settings.pipeline_queue_name,
        log_level=settings.log_level,
    )

    rules = load_filter_rules(settings.config_file_path)
    log.info("filter_rules_loaded", count=len(rules))

    app = DispatcherApp(settings, rules, RedisBackend.from_settings(settings), dry_run=dry_run)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler(sig: signal.Signals) -> None:
        log.info("shutdown_signal", signal=sig.name)
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler, sig)

    try:
        await app.start()
        await app.serve(stop_event)
    finally:
        await app.stop()


@click.command()
@click.option("--config", "config_path", default=None, help="Path to settings YAML file")
@click.option("--rules", "rules_path", default=None, help="Path to the filter rules file (overrides CONFIG_FILE_PATH)")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARN, ERROR)")
@click.option("--dry-run", is_flag=True, help="Log matched rules instead of pushing them to Redis")
def cli(config_path: str | None, rules_path: str | None, log_level: str | None, dry_run: bool) -> None:
    """Route GitHub push webhooks from Redis pub/sub onto the pipeline queue."""
    try:
        settings = load_settings(config_path)
    except ValidationError as exc:
        raise click.ClickException(f"invalid settings: {exc}") from exc
    if rules_path:
        settings.config_file_path = rules_path
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    try:
        asyncio.run(run(settings, dry_run=dry_run))
    except DispatcherError as exc:
        log.error("startup_failed", error=str(exc))
        raise click.ClickException(str(exc)) from exc
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
