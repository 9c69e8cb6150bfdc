"""Connection actor base: the per-network event loop, independent of the wire library."""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod

from loguru import logger

from relaybot.core.errors import ChannelClosed, ConnectionLost, MalformedFrame, NetworkError, SendFailed
from relaybot.events import InboundEvent, OutboundAction, ProtocolMessage
from relaybot.gateway.channels import Channel

_LOST = object()


class ConnectionHandle:
    """Outbound submission endpoint of one actor, held by the registry."""

    def __init__(self, network: str, maxsize: int = 10) -> None:
        self.network = network
        self._queue: asyncio.Queue[OutboundAction] = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def offer(self, action: OutboundAction) -> bool:
        """Hand an action to the actor without waiting. False if dead or saturated."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(action)
        except asyncio.QueueFull:
            return False
        return True

    async def get(self) -> OutboundAction:
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()


class ConnectionActorBase(ABC):
    """Owns one network connection.

    The loop races new protocol frames against outbound actions; whichever is
    ready is serviced. Frames are normalized and forwarded to the merge channel
    in arrival order. Outbound actions wait in the handle until the subclass
    calls mark_ready(). A failed send or a lost connection ends the actor.
    """

    def __init__(
        self,
        network: str,
        merge: Channel[InboundEvent],
        *,
        queue_size: int = 10,
    ) -> None:
        self.handle = ConnectionHandle(network, queue_size)
        self._merge = merge
        self._inbox: asyncio.Queue[object] = asyncio.Queue()
        self._ready = asyncio.Event()
        self._lost_reason: object = None

    @property
    def name(self) -> str:
        """Network name this actor serves."""
        return self.handle.network

    def feed(self, frame: object) -> None:
        """Accept one parsed frame from the wire. Must be called in arrival order."""
        self._inbox.put_nowait(frame)

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def mark_ready(self) -> None:
        """Registration finished; outbound actions may now be sent."""
        self._ready.set()

    def connection_lost(self, reason: object = None) -> None:
        logger.debug("[{}] connection lost: {}", self.name, reason)
        if self._lost_reason is None:
            self._lost_reason = reason
        self._inbox.put_nowait(_LOST)

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection and identify. Channel joins happen here."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    @abstractmethod
    async def send(self, action: OutboundAction) -> None:
        """Put one action on the wire. Raising ends the actor."""
        ...

    async def run(self) -> None:
        """Actor body. Returns when the connection ends or the merge point is gone."""
        try:
            await self.connect()
            await self._loop()
        except asyncio.CancelledError:
            logger.debug("[{}] actor cancelled", self.name)
            raise
        except NetworkError as exc:
            logger.error("{}; network is offline until restart", exc)
        except Exception:
            logger.exception("[{}] actor failed; network is offline until restart", self.name)
        finally:
            self.handle.close()
            dropped = self.handle.pending()
            if dropped:
                logger.warning("[{}] dropping {} unsent actions", self.name, dropped)
            with contextlib.suppress(Exception):
                await self.disconnect()

    async def _loop(self) -> None:
        frame_task: asyncio.Task[object] | None = None
        # Waits for readiness first, then for outbound actions
        out_task: asyncio.Task[object] | None = None
        try:
            while True:
                if frame_task is None:
                    frame_task = asyncio.create_task(self._inbox.get())
                if out_task is None:
                    if self.ready:
                        out_task = asyncio.create_task(self.handle.get())
                    else:
                        out_task = asyncio.create_task(self._ready.wait())
                done, _ = await asyncio.wait(
                    {frame_task, out_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if frame_task in done:
                    frame = frame_task.result()
                    frame_task = None
                    if frame is _LOST:
                        raise ConnectionLost(
                            f"connection lost ({self._lost_reason})",
                            network=self.name,
                            code="connection_lost",
                        )
                    if not await self._forward(frame):
                        return
                if out_task in done:
                    result = out_task.result()
                    out_task = None
                    if isinstance(result, OutboundAction):
                        await self._send(result)
        finally:
            for task in (frame_task, out_task):
                if task is not None:
                    task.cancel()

    async def _send(self, action: OutboundAction) -> None:
        try:
            await self.send(action)
        except Exception as exc:
            raise SendFailed(
                f"send to {action.target.channel} failed: {exc!r}",
                network=self.name,
                code="send_failed",
                original_error=exc,
            ) from exc

    async def _forward(self, frame: object) -> bool:
        """Normalize and forward one frame. False when the merge point is closed."""
        try:
            message = ProtocolMessage.from_frame(frame)
        except MalformedFrame as exc:
            logger.warning("[{}] dropping malformed frame: {}", self.name, exc)
            return True
        try:
            await self._merge.send(InboundEvent(self.name, message))
        except ChannelClosed:
            logger.info("[{}] merge channel closed; stopping", self.name)
            return False
        return True
