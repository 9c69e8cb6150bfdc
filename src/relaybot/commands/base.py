"""Command context and name -> handler table."""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from relaybot.events import ChannelAddress, Sender
from relaybot.gateway.channels import ActionSender, AdminQueryClient

if TYPE_CHECKING:
    from relaybot.commands.timer import TimerManager


@dataclass
class CommandContext:
    """Everything a handler may touch: where the command came from and the two core handles."""

    source: ChannelAddress
    sender: Sender | None
    command: str
    params: str
    actions: ActionSender
    admin: AdminQueryClient
    timers: TimerManager | None = None

    async def reply(self, text: str) -> None:
        await self.actions.say(self.source, text)

    async def emote(self, text: str) -> None:
        await self.actions.act(self.source, text)

    async def is_admin(self) -> bool:
        return await self.admin.is_admin(self.source.network, self.sender)


Handler = Callable[[CommandContext], Awaitable[None]]


class CommandTable:
    """Maps command words to async handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def command(self, *names: str, admin: bool = False) -> Callable[[Handler], Handler]:
        """Register a handler under one or more names. admin=True silently ignores non-admins."""

        def decorator(handler: Handler) -> Handler:
            registered = _admin_only(handler) if admin else handler
            for name in names:
                self._handlers[name] = registered
            return handler

        return decorator

    def get(self, name: str) -> Handler | None:
        return self._handlers.get(name)

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: str) -> bool:
        return name in self._handlers


def _admin_only(handler: Handler) -> Handler:
    @functools.wraps(handler)
    async def wrapper(ctx: CommandContext) -> None:
        if not await ctx.is_admin():
            logger.debug(
                "Ignoring .{} from non-admin {} on {}",
                ctx.command,
                ctx.sender.mask if ctx.sender else "<server>",
                ctx.source.network,
            )
            return
        await handler(ctx)

    return wrapper


def parse_command(text: str, prefix: str = ".") -> tuple[str, str] | None:
    """Split '<prefix>word params' into (word, params). None if text is not a command."""
    if not prefix or not text.startswith(prefix):
        return None
    body = text[len(prefix) :]
    parts = body.split(None, 1)
    if not parts or body[:1].isspace():
        return None
    command = parts[0]
    params = parts[1].strip() if len(parts) > 1 else ""
    return command, params


COMMANDS = CommandTable()
