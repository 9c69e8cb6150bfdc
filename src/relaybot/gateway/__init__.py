"""Gateway: channels, admin registry and the connection registry/router."""

from relaybot.gateway.channels import ActionSender, AdminQueryClient, Channel
from relaybot.gateway.admins import AdminRegistry
from relaybot.gateway.registry import ConnectionRegistry

__all__ = [
    "ActionSender",
    "AdminQueryClient",
    "AdminRegistry",
    "Channel",
    "ConnectionRegistry",
]
