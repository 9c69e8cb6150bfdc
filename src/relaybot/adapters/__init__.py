"""Per-network connection actors."""

from relaybot.adapters.base import ConnectionActorBase, ConnectionHandle
from relaybot.adapters.irc import NetworkActor

__all__ = ["ConnectionActorBase", "ConnectionHandle", "NetworkActor"]
