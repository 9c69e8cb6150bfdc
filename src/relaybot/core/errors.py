"""Relaybot domain exceptions."""

from __future__ import annotations


class RelayError(Exception):
    """Base for relaybot errors.

    `network` names the connection the error belongs to, when there is one,
    and prefixes the message so log lines say which network failed.
    """

    def __init__(
        self,
        message: str,
        *,
        network: str | None = None,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.network = network
        self.code = code
        self.details = dict(details or {})
        self.original_error = original_error

    def __str__(self) -> str:
        if self.network:
            return f"[{self.network}] {self.message}"
        return self.message


class RelayConfigurationError(RelayError):
    """Config validation or load failure."""


class ChannelClosed(RelayError):
    """Send or receive on a channel that has been closed."""


class MalformedFrame(RelayError):
    """Protocol frame that cannot be normalized into a ProtocolMessage."""


class NetworkError(RelayError):
    """Transport failure on one network. Ends that network's actor only."""


class ConnectionLost(NetworkError):
    """The connection dropped or never came up."""


class SendFailed(NetworkError):
    """Putting an outbound action on the wire raised."""
