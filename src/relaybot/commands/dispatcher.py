"""Reads the merged inbound stream and spawns one task per command, URL or trigger word."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Coroutine
from typing import Any

from loguru import logger

from relaybot.commands import h33h3
from relaybot.commands.base import COMMANDS, CommandContext, CommandTable, parse_command
from relaybot.commands.timer import TimerManager
from relaybot.commands.urltitle import UrlTitleFetcher, find_urls
from relaybot.core.errors import ChannelClosed
from relaybot.events import ChannelAddress, InboundEvent
from relaybot.gateway.channels import ActionSender, AdminQueryClient, Channel

CHANNEL_PREFIXES = ("#", "&", "+", "!")


class CommandDispatcher:
    """Consumer side of the core.

    Handlers run as independent fire-and-forget tasks, so a slow HTTP call
    never holds up other messages or networks. Handler exceptions are logged
    at the task boundary and go no further.
    """

    def __init__(
        self,
        inbound: Channel[InboundEvent],
        actions: ActionSender,
        admin: AdminQueryClient,
        *,
        commands: CommandTable = COMMANDS,
        prefix: str = ".",
        timers: TimerManager | None = None,
        titles: UrlTitleFetcher | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._inbound = inbound
        self._actions = actions
        self._admin = admin
        self._commands = commands
        self._prefix = prefix
        self._timers = timers
        self._titles = titles
        self._rng = rng or random.Random()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def run(self) -> None:
        while True:
            try:
                evt = await self._inbound.recv()
            except ChannelClosed:
                logger.info("Dispatcher: inbound stream closed")
                return
            self.handle(evt)

    def handle(self, evt: InboundEvent) -> list[asyncio.Task[None]]:
        """Spawn the tasks for one inbound event. Non-PRIVMSG events are ignored."""
        message = evt.message
        if not message.is_privmsg or message.text is None or message.target is None:
            return []
        source = self._reply_address(evt)
        if source is None:
            return []
        text = message.text
        spawned: list[asyncio.Task[None]] = []

        if self._titles is not None and find_urls(text):
            spawned.append(
                self._spawn(self._titles.announce(self._actions, source, text), "urltitle")
            )

        parsed = parse_command(text, self._prefix)
        if parsed is not None:
            command, params = parsed
            handler = self._commands.get(command)
            if handler is not None:
                ctx = CommandContext(
                    source=source,
                    sender=message.sender,
                    command=command,
                    params=params,
                    actions=self._actions,
                    admin=self._admin,
                    timers=self._timers,
                )
                spawned.append(self._spawn(handler(ctx), command))

        if h33h3.is_trigger(text) and message.sender is not None:
            spawned.append(
                self._spawn(
                    h33h3.answer(self._actions, source, message.sender.nick, self._rng), "h33h3"
                )
            )
        return spawned

    def _reply_address(self, evt: InboundEvent) -> ChannelAddress | None:
        target = evt.message.target or ""
        if target.startswith(CHANNEL_PREFIXES):
            return ChannelAddress(evt.network, target)
        # Private message: answer the sender directly
        sender = evt.message.sender
        if sender is None:
            return None
        return ChannelAddress(evt.network, sender.nick)

    def _spawn(self, coro: Coroutine[Any, Any, None], label: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._guard(coro, label), name=f"command:{label}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Coroutine[Any, Any, None], label: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Dispatcher: .{} handler failed", label)

    async def stop(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
