"""Connection registry: spawns per-network actors, merges inbound, routes outbound, answers admin queries."""

from __future__ import annotations

import asyncio
import contextlib
import functools
from collections import Counter
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from loguru import logger

from relaybot.core.errors import ChannelClosed
from relaybot.events import AdminQuery, InboundEvent, OutboundAction
from relaybot.gateway.admins import AdminRegistry
from relaybot.gateway.channels import Channel

if TYPE_CHECKING:
    from relaybot.adapters.base import ConnectionActorBase, ConnectionHandle
    from relaybot.config import NetworkConfig

ActorFactory = Callable[["NetworkConfig", Channel[InboundEvent]], "ConnectionActorBase"]


class ConnectionRegistry:
    """Owns the actor set. The handle mapping is only touched from the registry task."""

    def __init__(
        self,
        networks: Iterable[NetworkConfig],
        *,
        actions: Channel[OutboundAction],
        queries: Channel[AdminQuery],
        inbound: Channel[InboundEvent],
        actor_factory: ActorFactory,
        merge_queue_size: int = 100,
    ) -> None:
        self._networks = list(networks)
        self._admins = AdminRegistry.from_networks(self._networks)
        self._actions = actions
        self._queries = queries
        self._inbound = inbound
        self._actor_factory = actor_factory
        self._merge: Channel[InboundEvent] = Channel(merge_queue_size, name="merge")
        self._handles: dict[str, ConnectionHandle] = {}
        self._actor_tasks: dict[str, asyncio.Task[None]] = {}
        self.stats: Counter[str] = Counter()

    @property
    def admins(self) -> AdminRegistry:
        return self._admins

    @property
    def networks(self) -> list[str]:
        return [network.name for network in self._networks]

    def live_networks(self) -> list[str]:
        return [name for name, handle in self._handles.items() if not handle.closed]

    def start(self) -> None:
        """Spawn one actor per configured network."""
        if self._actor_tasks:
            return
        for network in self._networks:
            actor = self._actor_factory(network, self._merge)
            self._handles[network.name] = actor.handle
            task = asyncio.create_task(actor.run(), name=f"actor:{network.name}")
            task.add_done_callback(functools.partial(self._on_actor_done, network.name))
            self._actor_tasks[network.name] = task
        logger.info(
            "Registry: started {} network actors ({})",
            len(self._actor_tasks),
            ", ".join(self._actor_tasks),
        )

    def _on_actor_done(self, network: str, task: asyncio.Task[None]) -> None:
        handle = self._handles.get(network)
        if handle is not None:
            handle.close()
        if task.cancelled():
            return
        logger.warning("Registry: actor for {} terminated; actions to it will be dropped", network)

    async def run(self) -> None:
        """Main loop. Returns when the downstream inbound stream or an input channel closes."""
        self.start()
        sources: dict[str, Callable[[], object]] = {
            "inbound": self._merge.recv,
            "action": self._actions.recv,
            "query": self._queries.recv,
        }
        pending: dict[str, asyncio.Task] = {}
        try:
            while True:
                for key, recv in sources.items():
                    if key not in pending:
                        pending[key] = asyncio.create_task(recv())
                done, _ = await asyncio.wait(
                    pending.values(), return_when=asyncio.FIRST_COMPLETED
                )
                for key in list(pending):
                    task = pending[key]
                    if task not in done:
                        continue
                    del pending[key]
                    try:
                        item = task.result()
                    except ChannelClosed:
                        logger.info("Registry: {} channel closed; leaving loop", key)
                        return
                    if key == "inbound":
                        if not await self.forward(item):
                            return
                    elif key == "action":
                        self.route(item)
                    else:
                        self.answer(item)
        finally:
            for task in pending.values():
                task.cancel()

    async def forward(self, evt: InboundEvent) -> bool:
        """Pass one inbound event downstream. False when the downstream is gone."""
        try:
            await self._inbound.send(evt)
        except ChannelClosed:
            logger.info("Registry: inbound stream closed; shutting down")
            return False
        self.stats["inbound"] += 1
        return True

    def route(self, action: OutboundAction) -> bool:
        """Hand an action to the actor of its target network. Misses are logged and dropped."""
        network = action.target.network
        handle = self._handles.get(network)
        if handle is None:
            self.stats["dropped_unknown_network"] += 1
            logger.warning("Registry: dropping action for unknown network {}", network)
            return False
        if not handle.offer(action):
            reason = "dead" if handle.closed else "saturated"
            self.stats[f"dropped_{reason}"] += 1
            logger.warning("Registry: dropping action for {} network {}", reason, network)
            return False
        self.stats["routed"] += 1
        return True

    def answer(self, query: AdminQuery) -> bool:
        """Resolve an admin query. Answering a query nobody waits for is a no-op."""
        result = self._admins.is_admin(query.network, query.identity_mask)
        logger.debug(
            "Registry: is {} admin on {}? {}", query.identity_mask, query.network, result
        )
        if query.reply_to.done():
            self.stats["admin_abandoned"] += 1
            return result
        query.reply_to.set_result(result)
        return result

    async def stop(self) -> None:
        """Stop actors and discard whatever is still queued.

        Pending admin queries are cancelled, which the askers read as "not admin".
        Queued actions are dropped; only the count is logged.
        """
        for query in self._queries.drain():
            query.reply_to.cancel()
        dropped = len(self._actions.drain())
        if dropped:
            self.stats["dropped_shutdown"] += dropped
            logger.warning("Registry: dropping {} queued actions on shutdown", dropped)
        self._merge.close()
        tasks = list(self._actor_tasks.values())
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Registry: stopped {} actors", len(tasks))
