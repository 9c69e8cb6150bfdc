"""IRC connection actor: pydle client bridged to the actor loop."""

from __future__ import annotations

import asyncio
from typing import ClassVar

import pydle
from loguru import logger

from relaybot.adapters.base import ConnectionActorBase
from relaybot.adapters.irc_throttle import TokenBucket
from relaybot.config import NetworkConfig
from relaybot.events import Act, InboundEvent, OutboundAction, Say
from relaybot.formatting import split_lines
from relaybot.gateway.channels import Channel


class IRCClient(pydle.Client):
    """Pydle client that hands every raw frame to its actor."""

    # A dead connection stays dead; the actor ends and the network goes offline
    RECONNECT_ON_ERROR: ClassVar[bool] = False

    def __init__(
        self,
        actor: NetworkActor,
        nick: str,
        channels: tuple[str, ...],
        **kwargs,
    ):
        super().__init__(nick, **kwargs)
        self._actor = actor
        self._channels = channels

    async def on_raw(self, message):
        # Feed before awaiting anything so frames keep wire order
        self._actor.feed(message)
        await super().on_raw(message)

    async def on_connect(self):
        """After connect, join configured channels."""
        await super().on_connect()
        logger.info("[{}] connected as {}", self._actor.name, self.nickname)
        for channel in self._channels:
            await self.join(channel)
            logger.debug("[{}] joined {}", self._actor.name, channel)
        self._actor.mark_ready()

    async def on_disconnect(self, expected: bool) -> None:
        await super().on_disconnect(expected)
        self._actor.connection_lost("expected" if expected else "unexpected")


class NetworkActor(ConnectionActorBase):
    """One pydle connection to one network."""

    def __init__(
        self,
        network: NetworkConfig,
        merge: Channel[InboundEvent],
        *,
        queue_size: int = 10,
        throttle_limit: int = 5,
        max_line_bytes: int = 400,
    ) -> None:
        super().__init__(network.name, merge, queue_size=queue_size)
        self._network = network
        self._throttle = TokenBucket(throttle_limit)
        self._max_line_bytes = max_line_bytes
        self._client: IRCClient | None = None
        self._connect_task: asyncio.Task | None = None

    def _make_client(self) -> IRCClient:
        return IRCClient(self, self._network.nick, self._network.channels)

    async def connect(self) -> None:
        self._client = self._make_client()
        logger.info(
            "[{}] connecting to {}:{} (tls={})",
            self.name,
            self._network.server,
            self._network.port,
            self._network.tls,
        )
        self._connect_task = asyncio.create_task(
            self._client.connect(
                hostname=self._network.server,
                port=self._network.port,
                tls=self._network.tls,
            )
        )
        self._connect_task.add_done_callback(self._on_connect_done)

    def _on_connect_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[{}] connect failed: {}", self.name, exc)
            self.connection_lost(exc)

    async def disconnect(self) -> None:
        if self._connect_task and not self._connect_task.done():
            self._connect_task.cancel()
        if self._client and self._client.connected:
            await self._client.disconnect(expected=True)
        self._client = None

    async def send(self, action: OutboundAction) -> None:
        if self._client is None:
            raise RuntimeError(f"{self.name}: no client")
        channel = action.target.channel
        for line in split_lines(action.payload.text, self._max_line_bytes):
            await self._throttle.take()
            if isinstance(action.payload, Act):
                logger.debug("[{}] ACTION {} {}", self.name, channel, line)
                await self._client.ctcp(channel, "ACTION", line)
            elif isinstance(action.payload, Say):
                logger.debug("[{}] PRIVMSG {} {}", self.name, channel, line)
                await self._client.message(channel, line)
