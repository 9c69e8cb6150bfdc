"""Per-network admin masks, fixed at startup."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from relaybot.config import NetworkConfig


class AdminRegistry:
    """Network name -> ordered admin masks. Read-only after construction."""

    def __init__(self, admins: Mapping[str, Iterable[str]] | None = None) -> None:
        self._admins: Mapping[str, tuple[str, ...]] = MappingProxyType(
            {network: tuple(masks) for network, masks in (admins or {}).items()}
        )

    @classmethod
    def from_networks(cls, networks: Iterable[NetworkConfig]) -> AdminRegistry:
        return cls({n.name: n.admins for n in networks})

    def masks_for(self, network: str) -> tuple[str, ...]:
        return self._admins.get(network, ())

    def is_admin(self, network: str, identity_mask: str) -> bool:
        """Exact, case-sensitive match against the network's list. Unknown network is False."""
        for mask in self.masks_for(network):
            if mask == identity_mask:
                return True
        return False

    def __len__(self) -> int:
        return len(self._admins)
