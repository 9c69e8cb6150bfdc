"""Dispatch entry point: owns the registry, the three channels and the collaborators."""

from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from relaybot.adapters import NetworkActor
from relaybot.adapters.base import ConnectionActorBase
from relaybot.commands import CommandDispatcher, TimerManager, UrlTitleFetcher
from relaybot.config import Config, NetworkConfig
from relaybot.events import AdminQuery, InboundEvent, OutboundAction
from relaybot.gateway import ActionSender, AdminQueryClient, Channel, ConnectionRegistry
from relaybot.gateway.registry import ActorFactory
from relaybot.http_client import create_http_client


class Bot:
    """Wires channels, registry and dispatcher together and runs them until stopped.

    Construction validates every network and tunable first; a bad entry
    raises RelayConfigurationError before any connection is opened.
    """

    def __init__(
        self,
        config: Config,
        *,
        actor_factory: ActorFactory | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        networks = config.networks()
        config.validate()

        self.actions: Channel[OutboundAction] = Channel(config.queue_size, name="actions")
        self.queries: Channel[AdminQuery] = Channel(config.queue_size, name="admin-queries")
        self.inbound: Channel[InboundEvent] = Channel(config.merge_queue_size, name="inbound")

        self.action_sender = ActionSender(self.actions)
        self.admin_client = AdminQueryClient(
            self.queries, timeout=config.admin_query_timeout_seconds
        )

        self.registry = ConnectionRegistry(
            networks,
            actions=self.actions,
            queries=self.queries,
            inbound=self.inbound,
            actor_factory=actor_factory or self._irc_actor,
            merge_queue_size=config.merge_queue_size,
        )

        self._owns_http = http_client is None
        self.http = http_client or create_http_client(config.http_timeout_seconds)
        self.timers = TimerManager(self.action_sender)
        self.dispatcher = CommandDispatcher(
            self.inbound,
            self.action_sender,
            self.admin_client,
            prefix=config.command_prefix,
            timers=self.timers,
            titles=UrlTitleFetcher(self.http),
        )
        self._tasks: list[asyncio.Task[None]] = []
        self._stopped = False

    def _irc_actor(
        self, network: NetworkConfig, merge: Channel[InboundEvent]
    ) -> ConnectionActorBase:
        return NetworkActor(
            network,
            merge,
            queue_size=self.config.queue_size,
            throttle_limit=self.config.irc_throttle_limit,
            max_line_bytes=self.config.irc_max_line_bytes,
        )

    def start(self) -> None:
        """Spawn the registry and dispatcher tasks."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self.registry.run(), name="registry"),
            asyncio.create_task(self.dispatcher.run(), name="dispatcher"),
        ]

    async def run(self) -> None:
        """Run until the registry or dispatcher exits, or until cancelled."""
        self.start()
        try:
            await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Shut down without draining: queued actions are dropped, pending queries read as 'not admin'."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Bot shutting down")
        self.actions.close()
        self.queries.close()
        await self.registry.stop()
        self.inbound.close()
        await self.dispatcher.stop()
        await self.timers.stop()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._owns_http:
            await self.http.aclose()
        logger.info("Bot stopped (stats: {})", dict(self.registry.stats))
