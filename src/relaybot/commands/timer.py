"""Reminder timers: .timer, .pizza, .bigone and the manager that fires them."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from loguru import logger

from relaybot.commands.base import COMMANDS, CommandContext
from relaybot.events import ChannelAddress
from relaybot.gateway.channels import ActionSender

RE_HHMM = re.compile(r"^(?P<hour>\d\d?)[:.](?P<minute>\d\d)$")
RE_HMS = re.compile(
    r"^(?:(?P<hour>\d+)h)?(?:(?P<minute>\d+)(?:m|min))?(?:(?P<second>\d+)s)?$"
)
RE_MINUTES = re.compile(r"^(?P<minute>\d+)$")


class TimerParseError(ValueError):
    """A timer spec that looks valid but names an impossible time or an out of range delay."""


def parse_duration(spec: str, now: datetime | None = None) -> timedelta | None:
    """Parse a timer spec into a delay.

    HH:MM / HH.MM is the next occurrence of that local time, 1h2m3s style
    parts are summed, a bare number is minutes. Returns None for anything else.
    """
    if not spec:
        return None
    match = RE_HHMM.match(spec)
    if match:
        now = now or datetime.now()
        try:
            at = now.replace(
                hour=int(match["hour"]), minute=int(match["minute"]), second=0, microsecond=0
            )
        except ValueError as exc:
            raise TimerParseError(f"Unable to parse time from {spec}") from exc
        if at < now:
            at += timedelta(days=1)
        return at - now
    try:
        match = RE_HMS.match(spec)
        if match:
            return timedelta(
                hours=int(match["hour"] or 0),
                minutes=int(match["minute"] or 0),
                seconds=int(match["second"] or 0),
            )
        match = RE_MINUTES.match(spec)
        if match:
            return timedelta(minutes=int(match["minute"]))
    except OverflowError as exc:
        raise TimerParseError(f"Unable to parse time from {spec}") from exc
    return None


def format_duration(delay: timedelta) -> str:
    """1h2m3s style; zero parts are left out."""
    total = int(delay.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{hours}h"
    if minutes:
        out += f"{minutes}m"
    if seconds:
        out += f"{seconds}s"
    return out or "0s"


@dataclass(frozen=True)
class Timer:
    target: ChannelAddress
    message: str
    due: datetime


class TimerManager:
    """Holds scheduled reminders and submits them as actions when due. In memory only."""

    def __init__(self, actions: ActionSender) -> None:
        self._actions = actions
        self._tasks: dict[asyncio.Task[None], Timer] = {}

    def schedule(self, target: ChannelAddress, message: str, delay: timedelta) -> Timer:
        """Start a timer. Raises TimerParseError when the due time is past datetime.max."""
        try:
            due = datetime.now(timezone.utc) + delay
        except OverflowError as exc:
            raise TimerParseError(f"Unable to set a timer {format_duration(delay)} ahead") from exc
        timer = Timer(target, message, due)
        task = asyncio.create_task(self._fire(timer, max(delay.total_seconds(), 0.0)))
        self._tasks[task] = timer
        task.add_done_callback(self._tasks.pop)
        logger.debug("Timer scheduled for {} in {}", target, format_duration(delay))
        return timer

    async def _fire(self, timer: Timer, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._actions.say(timer.target, timer.message)

    def pending(self) -> list[Timer]:
        return sorted(self._tasks.values(), key=lambda t: t.due)

    async def stop(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("Discarded {} pending timers", len(tasks))


async def _start_timer(ctx: CommandContext, delay: timedelta, message: str, confirmation: str) -> None:
    if ctx.timers is None:
        logger.warning("Timer command .{} without a timer manager", ctx.command)
        return
    try:
        ctx.timers.schedule(ctx.source, message, delay)
    except TimerParseError as exc:
        await ctx.reply(str(exc))
        return
    await ctx.reply(confirmation)


@COMMANDS.command("timer")
async def command_timer(ctx: CommandContext) -> None:
    """.timer <time> [message]"""
    spec, _, message = ctx.params.partition(" ")
    try:
        delay = parse_duration(spec)
    except TimerParseError as exc:
        await ctx.reply(str(exc))
        return
    if delay is None:
        return
    if ctx.sender is not None:
        text = f"{ctx.sender.nick}: {message}"
    else:
        text = f"Timer: {message}"
    await _start_timer(ctx, delay, text, f"I'll remind you in {format_duration(delay)}.")


async def _pizza(ctx: CommandContext, minutes: int, size: str) -> None:
    if ctx.sender is not None:
        text = f"Help {ctx.sender.nick}! The {size} pizza is burning!"
    else:
        text = f"Help! The {size} pizza is burning!"
    await _start_timer(
        ctx, timedelta(minutes=minutes), text, f"I'll shout about the pizza in {minutes} minutes."
    )


@COMMANDS.command("pizza")
async def command_pizza(ctx: CommandContext) -> None:
    await _pizza(ctx, 12, "small")


@COMMANDS.command("bigone")
async def command_bigone(ctx: CommandContext) -> None:
    await _pizza(ctx, 15, "big")
