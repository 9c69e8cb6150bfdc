"""Test harness: a live registry over fake actors, plus the three channels around it."""

from __future__ import annotations

import asyncio

from relaybot.config import NetworkConfig
from relaybot.events import AdminQuery, InboundEvent, OutboundAction
from relaybot.gateway.channels import ActionSender, AdminQueryClient, Channel
from relaybot.gateway.registry import ConnectionRegistry
from tests.mocks import FakeActor, FakeActorFactory


class RegistryHarness:
    """Runs ConnectionRegistry.run() in a task; use as an async context manager."""

    def __init__(self, networks: list[NetworkConfig], *, queue_size: int = 10) -> None:
        self.actions: Channel[OutboundAction] = Channel(queue_size, name="actions")
        self.queries: Channel[AdminQuery] = Channel(queue_size, name="admin-queries")
        self.inbound: Channel[InboundEvent] = Channel(100, name="inbound")
        self.factory = FakeActorFactory()
        self.registry = ConnectionRegistry(
            networks,
            actions=self.actions,
            queries=self.queries,
            inbound=self.inbound,
            actor_factory=self.factory,
        )
        self.sender = ActionSender(self.actions)
        self.admin = AdminQueryClient(self.queries, timeout=1.0)
        self._task: asyncio.Task | None = None

    def actor(self, network: str) -> FakeActor:
        return self.factory.actors[network]

    async def __aenter__(self) -> RegistryHarness:
        self._task = asyncio.create_task(self.registry.run())
        # Let the registry spawn actors and the actors connect
        await asyncio.sleep(0)
        for actor in self.factory.actors.values():
            await asyncio.wait_for(actor.connected.wait(), 1.0)
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.actions.close()
        self.queries.close()
        await self.registry.stop()
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
