"""Configuration: YAML + .env overlay, network descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from relaybot.core.errors import RelayConfigurationError

DEFAULTS: dict[str, Any] = {
    "command_prefix": ".",
    "http_timeout_seconds": 10,
    "queue_size": 10,
    "merge_queue_size": 100,
    "admin_query_timeout_seconds": 5,
    "irc": {
        "throttle_limit": 5,
        "max_line_bytes": 400,
    },
}

DEFAULT_NICK = "relaybot"
DEFAULT_PORT = 6667
DEFAULT_TLS_PORT = 6697


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: str | Path) -> dict[str, Any]:
    """Load config from YAML file. Use SafeLoader. Returns raw dict."""
    path = Path(path)
    if not path.exists():
        raise RelayConfigurationError(
            f"Config file not found: {path}", code="missing_file", details={"path": str(path)}
        )

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise RelayConfigurationError(
            f"Failed to parse config {path}", code="invalid_yaml", original_error=exc
        ) from exc
    if not isinstance(data, dict):
        raise RelayConfigurationError(
            f"Config file {path} has invalid structure (expected mapping)",
            code="invalid_structure",
        )
    return data


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load .env (python-dotenv) then the YAML config."""
    from dotenv import load_dotenv

    load_dotenv()
    return load_config(path)


@dataclass(frozen=True)
class NetworkConfig:
    """One network descriptor from the `networks` list."""

    name: str
    server: str
    port: int = DEFAULT_PORT
    tls: bool = False
    nick: str = DEFAULT_NICK
    channels: tuple[str, ...] = ()
    admins: tuple[str, ...] = field(default=(), repr=False)

    @classmethod
    def from_dict(cls, item: dict[str, Any], index: int = 0) -> NetworkConfig:
        """Validate one raw descriptor. Missing network name or server is fatal."""
        if not isinstance(item, dict):
            raise RelayConfigurationError(
                f"networks[{index}] must be a mapping",
                code="invalid_network",
                details={"index": index, "type": type(item).__name__},
            )
        name = item.get("network")
        if not name or not isinstance(name, str):
            raise RelayConfigurationError(
                f"networks[{index}]: network must be given a name",
                code="missing_network_name",
                details={"index": index},
            )
        server = item.get("server")
        if not server or not isinstance(server, str):
            raise RelayConfigurationError(
                f"Network {name} has no server defined",
                code="missing_server",
                details={"network": name},
            )
        tls = _flag(item.get("tls", False), name, "tls")
        try:
            port = int(item.get("port") or (DEFAULT_TLS_PORT if tls else DEFAULT_PORT))
        except (TypeError, ValueError) as exc:
            raise RelayConfigurationError(
                f"Network {name} has an invalid port",
                code="invalid_port",
                details={"network": name, "port": item.get("port")},
                original_error=exc,
            ) from exc
        return cls(
            name=name,
            server=server,
            port=port,
            tls=tls,
            nick=str(item.get("nick") or DEFAULT_NICK),
            channels=_str_list(item.get("channels")),
            admins=_str_list(item.get("admins")),
        )


_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0", ""}


def _flag(value: Any, network: str, key: str) -> bool:
    """YAML booleans, plus the usual spellings when quoted."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
        return value.strip().lower() in _TRUE
    raise RelayConfigurationError(
        f"Network {network}: {key} must be true or false",
        code="invalid_flag",
        details={"network": network, key: value},
    )


def _str_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str))


class Config:
    """Config accessor with attribute-style access for nested keys."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = _deep_update(DEFAULTS, data or {})

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path (e.g. 'irc.throttle_limit')."""
        obj: Any = self._data
        for part in key.split("."):
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def networks(self) -> list[NetworkConfig]:
        """Parse and validate every network. Any invalid entry aborts startup."""
        raw = self._data.get("networks")
        if raw is None:
            raise RelayConfigurationError("No networks found in configuration", code="no_networks")
        if not isinstance(raw, list):
            raise RelayConfigurationError(
                "networks must be a list",
                code="invalid_networks",
                details={"type": type(raw).__name__},
            )
        if not raw:
            raise RelayConfigurationError("No networks found in configuration", code="no_networks")

        networks: list[NetworkConfig] = []
        seen: set[str] = set()
        for index, item in enumerate(raw):
            network = NetworkConfig.from_dict(item, index)
            if network.name in seen:
                raise RelayConfigurationError(
                    f"Duplicate network name {network.name}",
                    code="duplicate_network",
                    details={"network": network.name},
                )
            seen.add(network.name)
            networks.append(network)
        logger.debug("Config: {} networks ({})", len(networks), ", ".join(sorted(seen)))
        return networks

    def validate(self) -> None:
        """Read every tunable once so a bad value fails at startup, not mid-run."""
        for prop in (
            "command_prefix",
            "http_timeout_seconds",
            "queue_size",
            "merge_queue_size",
            "admin_query_timeout_seconds",
            "irc_throttle_limit",
            "irc_max_line_bytes",
        ):
            getattr(self, prop)

    def _number(self, key: str, cast: type[int] | type[float], minimum: float) -> Any:
        value = self.get(key)
        if isinstance(value, bool):
            value = None
        try:
            number = cast(value)
        except (TypeError, ValueError) as exc:
            raise RelayConfigurationError(
                f"{key} must be a number, got {value!r}",
                code="invalid_value",
                details={"key": key, "value": value},
                original_error=exc,
            ) from exc
        if number < minimum:
            raise RelayConfigurationError(
                f"{key} must be at least {minimum}, got {number}",
                code="invalid_value",
                details={"key": key, "value": value},
            )
        return number

    @property
    def command_prefix(self) -> str:
        return str(self._data.get("command_prefix") or ".")

    @property
    def http_timeout_seconds(self) -> float:
        """Per-request bound for handler HTTP calls."""
        return self._number("http_timeout_seconds", float, 0.1)

    @property
    def queue_size(self) -> int:
        """Capacity of the action, admin-query and per-network queues."""
        return self._number("queue_size", int, 1)

    @property
    def merge_queue_size(self) -> int:
        return self._number("merge_queue_size", int, 1)

    @property
    def admin_query_timeout_seconds(self) -> float:
        return self._number("admin_query_timeout_seconds", float, 0.1)

    @property
    def irc_throttle_limit(self) -> int:
        """Lines per second, and burst size, of the IRC flood-control bucket."""
        return self._number("irc.throttle_limit", int, 1)

    @property
    def irc_max_line_bytes(self) -> int:
        # Room for at least one 4-byte UTF-8 character
        return self._number("irc.max_line_bytes", int, 4)
