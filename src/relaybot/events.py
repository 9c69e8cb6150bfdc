"""Event and action types passed between actors, the registry and handlers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from relaybot.core.errors import MalformedFrame


@dataclass(frozen=True)
class ChannelAddress:
    """One destination: a channel on a named network."""

    network: str
    channel: str


@dataclass(frozen=True)
class Say:
    """Plain text message (PRIVMSG)."""

    text: str


@dataclass(frozen=True)
class Act:
    """Emote (CTCP ACTION)."""

    text: str


ActionPayload = Say | Act


@dataclass(frozen=True)
class OutboundAction:
    """Something to send to one channel on one network."""

    target: ChannelAddress
    payload: ActionPayload


def say(network: str, channel: str, text: str) -> OutboundAction:
    return OutboundAction(ChannelAddress(network, channel), Say(text))


def act(network: str, channel: str, text: str) -> OutboundAction:
    return OutboundAction(ChannelAddress(network, channel), Act(text))


@dataclass(frozen=True)
class Sender:
    """Resolved user prefix of a protocol message."""

    nick: str
    user: str
    host: str

    @property
    def mask(self) -> str:
        """Identity mask in nick!user@host form."""
        return f"{self.nick}!{self.user}@{self.host}"

    @classmethod
    def parse(cls, source: str | None) -> Sender | None:
        """Parse a nick!user@host prefix. Server names and partial prefixes give None."""
        if not source or "!" not in source or "@" not in source:
            return None
        nick, _, rest = source.partition("!")
        user, _, host = rest.partition("@")
        if not nick or not user or not host:
            return None
        return cls(nick=nick, user=user, host=host)


@dataclass(frozen=True)
class ProtocolMessage:
    """Normalized IRC frame: command, params and optional user sender."""

    command: str
    params: tuple[str, ...] = ()
    sender: Sender | None = None
    source: str | None = None

    @property
    def is_privmsg(self) -> bool:
        return self.command == "PRIVMSG" and len(self.params) >= 2

    @property
    def target(self) -> str | None:
        """First param; the channel or nick a PRIVMSG was sent to."""
        return self.params[0] if self.params else None

    @property
    def text(self) -> str | None:
        """Trailing param of a PRIVMSG."""
        return self.params[-1] if self.is_privmsg else None

    @classmethod
    def from_frame(cls, frame: object) -> ProtocolMessage:
        """Build from a parsed pydle message (anything with command/params/source).

        Raises MalformedFrame when the frame has no usable command.
        """
        command = getattr(frame, "command", None)
        if command is None or str(command) == "":
            raise MalformedFrame("frame has no command", details={"frame": repr(frame)})
        params = getattr(frame, "params", None) or ()
        try:
            params = tuple(str(p) for p in params)
        except TypeError as exc:
            raise MalformedFrame(
                "frame params are not iterable",
                details={"frame": repr(frame)},
                original_error=exc,
            ) from exc
        source = getattr(frame, "source", None)
        source = str(source) if source else None
        return cls(
            command=str(command).upper(),
            params=params,
            sender=Sender.parse(source),
            source=source,
        )


@dataclass(frozen=True)
class InboundEvent:
    """One protocol message received on a network."""

    network: str
    message: ProtocolMessage


@dataclass
class AdminQuery:
    """Request to the registry: is identity_mask an admin on network?

    reply_to is resolved at most once by the registry. A cancelled future means
    the asker stopped waiting, or the registry dropped the query.
    """

    network: str
    identity_mask: str
    reply_to: asyncio.Future[bool] = field(
        default_factory=lambda: asyncio.get_running_loop().create_future()
    )
