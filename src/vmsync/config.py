"""Client configuration for vmsync."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from vmsync._constants import (
    FILE_INVALIDATE_DELAY,
    POLL_COOLDOWN,
    POLL_INTERVAL,
    REQUEST_TIMEOUT,
    WRITE_INVALIDATE_DELAY,
)
from vmsync.exceptions import ConfigError

_UNIX_SCHEME = "unix"


def _default_config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "vmsync"


@dataclasses.dataclass(frozen=True)
class ServerAddress:
    """Parsed daemon address.

    Either ``scheme == "unix"`` with a socket ``path``, or a TCP
    ``host``/``port`` pair.
    """

    scheme: str
    host: str = ""
    port: int = 0
    path: str = ""

    @property
    def is_unix(self) -> bool:
        return self.scheme == _UNIX_SCHEME


def parse_server_address(value: str) -> ServerAddress:
    """Parse ``unix:/path/to/socket`` or ``host:port``.

    Raises :class:`ConfigError` for anything else.
    """
    text = value.strip()
    if not text:
        raise ConfigError("server address must be non-empty")

    if text.startswith(f"{_UNIX_SCHEME}:"):
        path = text[len(_UNIX_SCHEME) + 1 :]
        if not path:
            raise ConfigError(f"unix server address without a socket path: {value!r}")
        return ServerAddress(scheme=_UNIX_SCHEME, path=path)

    host, sep, port_text = text.rpartition(":")
    if not sep or not host:
        raise ConfigError(f"server address must be 'host:port' or 'unix:/path', got {value!r}")
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ConfigError(f"invalid port in server address {value!r}") from exc
    if not 0 < port < 65536:
        raise ConfigError(f"port out of range in server address {value!r}")
    return ServerAddress(scheme="tcp", host=host.strip("[]"), port=port)


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Synchronization layer configuration.

    Parameters
    ----------
    server_address : str
        Daemon address, ``unix:/path`` or ``host:port``.
    cert_file : str or None
        Client certificate (PEM) presented to the daemon.
    key_file : str or None
        Private key matching ``cert_file``.
    ca_file : str or None
        CA bundle used to verify the daemon.  When unset the daemon's
        self-signed certificate is accepted without verification.
    settings_file : str
        Client settings file watched for external modifications.
    store_file : str
        JSON file backing the persisted GUI store.
    poll_interval : float
        Minimum seconds between the starts of two status polls.
    poll_cooldown : float
        Seconds always waited after a poll before the next one starts.
    write_invalidate_delay : float
        Seconds between a daemon settings write completing and the
        cached value being re-fetched.
    file_invalidate_delay : float
        Seconds between a settings file modification and the cached
        value being re-read.
    request_timeout : float
        Total timeout for a single daemon request.
    """

    server_address: str = "unix:/run/vmsync/daemon.sock"
    cert_file: str | None = None
    key_file: str | None = None
    ca_file: str | None = None
    settings_file: str = dataclasses.field(default_factory=lambda: str(_default_config_dir() / "client.conf"))
    store_file: str = dataclasses.field(default_factory=lambda: str(_default_config_dir() / "gui.json"))
    poll_interval: float = POLL_INTERVAL
    poll_cooldown: float = POLL_COOLDOWN
    write_invalidate_delay: float = WRITE_INVALIDATE_DELAY
    file_invalidate_delay: float = FILE_INVALIDATE_DELAY
    request_timeout: float = REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        for name in ("poll_interval", "poll_cooldown", "write_invalidate_delay", "file_invalidate_delay"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        if (self.cert_file is None) != (self.key_file is None):
            raise ConfigError("cert_file and key_file must be given together")

    @property
    def address(self) -> ServerAddress:
        return parse_server_address(self.server_address)

    @property
    def settings_path(self) -> Path:
        """Absolute settings file path, as reported by filesystem events."""
        return Path(os.path.abspath(os.path.expanduser(self.settings_file)))

    @property
    def store_path(self) -> Path:
        return Path(os.path.abspath(os.path.expanduser(self.store_file)))

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from environment variables.

        Reads ``VMSYNC_SERVER_ADDRESS``, ``VMSYNC_CERT_FILE``,
        ``VMSYNC_KEY_FILE``, ``VMSYNC_CA_FILE``, ``VMSYNC_SETTINGS_FILE``,
        ``VMSYNC_STORE_FILE`` and the numeric ``VMSYNC_POLL_INTERVAL``,
        ``VMSYNC_POLL_COOLDOWN`` and ``VMSYNC_REQUEST_TIMEOUT``.
        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "VMSYNC_SERVER_ADDRESS": "server_address",
            "VMSYNC_CERT_FILE": "cert_file",
            "VMSYNC_KEY_FILE": "key_file",
            "VMSYNC_CA_FILE": "ca_file",
            "VMSYNC_SETTINGS_FILE": "settings_file",
            "VMSYNC_STORE_FILE": "store_file",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "VMSYNC_POLL_INTERVAL": "poll_interval",
            "VMSYNC_POLL_COOLDOWN": "poll_cooldown",
            "VMSYNC_REQUEST_TIMEOUT": "request_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise ConfigError(f"{env_key} must be a number, got {val!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
