"""Bounded channels between the registry, actors and command handlers."""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

from loguru import logger

from relaybot.core.errors import ChannelClosed
from relaybot.events import (
    Act,
    AdminQuery,
    ChannelAddress,
    OutboundAction,
    Say,
    Sender,
)

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """FIFO queue with a close() that wakes the receiver.

    Many producers may share one channel; there is a single consumer.
    send() suspends while the channel is full.
    """

    def __init__(self, maxsize: int = 10, *, name: str = "channel") -> None:
        self.name = name
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    def full(self) -> bool:
        return self._queue.full()

    async def send(self, item: T) -> None:
        if self._closed:
            raise ChannelClosed(f"{self.name} is closed", code="closed")
        await self._queue.put(item)

    def send_nowait(self, item: T) -> None:
        """Enqueue without waiting. Raises ChannelClosed or asyncio.QueueFull."""
        if self._closed:
            raise ChannelClosed(f"{self.name} is closed", code="closed")
        self._queue.put_nowait(item)

    async def recv(self) -> T:
        """Next item. Raises ChannelClosed once closed and drained."""
        if self._closed and self._queue.empty():
            raise ChannelClosed(f"{self.name} is closed", code="closed")
        item = await self._queue.get()
        if item is _CLOSED:
            raise ChannelClosed(f"{self.name} is closed", code="closed")
        return item  # type: ignore[return-value]

    def drain(self) -> list[T]:
        """Remove and return everything currently queued."""
        items: list[T] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return items
            if item is not _CLOSED:
                items.append(item)  # type: ignore[arg-type]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a receiver blocked on an empty queue
        if self._queue.empty():
            self._queue.put_nowait(_CLOSED)


class ActionSender:
    """Submission handle for outbound actions. Share freely between tasks."""

    def __init__(self, channel: Channel[OutboundAction]) -> None:
        self._channel = channel

    async def submit(self, action: OutboundAction) -> bool:
        """Queue an action. Returns False when the bot is shutting down."""
        try:
            await self._channel.send(action)
        except ChannelClosed:
            logger.debug("Action channel closed; dropping action for {}", action.target)
            return False
        return True

    async def say(self, target: ChannelAddress, text: str) -> bool:
        return await self.submit(OutboundAction(target, Say(text)))

    async def act(self, target: ChannelAddress, text: str) -> bool:
        return await self.submit(OutboundAction(target, Act(text)))


class AdminQueryClient:
    """Asks the registry whether a sender is an admin on a network."""

    def __init__(self, channel: Channel[AdminQuery], *, timeout: float | None = 5.0) -> None:
        self._channel = channel
        self._timeout = timeout

    async def is_admin(self, network: str, sender: Sender | None) -> bool:
        """True only when the registry answers yes. No identity, no answer or shutdown all give False."""
        if sender is None:
            return False
        return await self.is_admin_mask(network, sender.mask)

    async def is_admin_mask(self, network: str, mask: str) -> bool:
        query = AdminQuery(network=network, identity_mask=mask)
        try:
            await self._channel.send(query)
        except ChannelClosed:
            return False
        try:
            return bool(await asyncio.wait_for(query.reply_to, self._timeout))
        except asyncio.TimeoutError:
            logger.warning("Admin query for {} on {} timed out", mask, network)
            return False
        except asyncio.CancelledError:
            if query.reply_to.cancelled() and not _current_task_cancelling():
                # Registry dropped the query
                return False
            raise


def _current_task_cancelling() -> bool:
    task = asyncio.current_task()
    return bool(task and task.cancelling())
