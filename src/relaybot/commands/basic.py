"""Simple in-process commands: echo, roll, me, say."""

from __future__ import annotations

import random

from relaybot.commands.base import COMMANDS, CommandContext
from relaybot.events import ChannelAddress

ROLL_USAGE = "Usage: .roll <min> <max>"


@COMMANDS.command("echo")
async def command_echo(ctx: CommandContext) -> None:
    if ctx.sender is not None:
        await ctx.reply(f"{ctx.sender.mask}: {ctx.params}")
    else:
        await ctx.reply(f"Echo: {ctx.params}")


def parse_roll(params: str) -> tuple[int, int] | None:
    """Exactly two integers with min < max, else None."""
    parts = params.split()
    if len(parts) != 2:
        return None
    try:
        low, high = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if low >= high:
        return None
    return low, high


@COMMANDS.command("roll")
async def command_roll(ctx: CommandContext) -> None:
    bounds = parse_roll(ctx.params)
    if bounds is None:
        await ctx.reply(ROLL_USAGE)
        return
    await ctx.reply(str(random.randint(*bounds)))


@COMMANDS.command("me")
async def command_me(ctx: CommandContext) -> None:
    if ctx.params:
        await ctx.emote(ctx.params)


@COMMANDS.command("say", admin=True)
async def command_say(ctx: CommandContext) -> None:
    """.say <#channel> <text>: speak in another channel of the same network."""
    channel, _, text = ctx.params.partition(" ")
    text = text.strip()
    if not channel or not text:
        await ctx.reply("Usage: .say <#channel> <text>")
        return
    await ctx.actions.say(ChannelAddress(ctx.source.network, channel), text)
