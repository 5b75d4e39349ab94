"""Async facade over the VM-manager daemon."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp

from vmsync._constants import GET_ENDPOINT, INFO_ENDPOINT, NETWORKS_ENDPOINT, SET_ENDPOINT
from vmsync._redact import redact_setting
from vmsync._transport import HttpTransport, Transport, build_connector
from vmsync.config import SyncConfig
from vmsync.exceptions import TransportError, VmSyncError, WriteFailedError
from vmsync.models.instance import Snapshot, parse_snapshot
from vmsync.models.network import NetworkInterface

_logger = logging.getLogger(__name__)


class RemoteClient(Protocol):
    """What the synchronization layer needs from the daemon."""

    async def fetch_status(self) -> Snapshot:
        ...

    async def get_setting(self, key: str) -> str:
        ...

    async def set_setting(self, key: str, value: str) -> None:
        ...

    async def list_networks(self) -> list[NetworkInterface]:
        ...


class DaemonClient:
    """Async client for the daemon.

    Usage::

        async with DaemonClient(config) as client:
            snapshot = await client.fetch_status()
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> DaemonClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession(
                    connector=build_connector(self._config),
                    timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
                )
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise VmSyncError("Client not initialized. Use 'async with DaemonClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Daemon calls
    # ------------------------------------------------------------------

    async def fetch_status(self) -> Snapshot:
        """Fetch information about every instance."""
        response = await self._require_transport().post(INFO_ENDPOINT, {})
        try:
            return parse_snapshot(response)
        except ValueError as exc:
            raise TransportError(f"Malformed status payload: {exc}", endpoint=INFO_ENDPOINT) from exc

    async def get_setting(self, key: str) -> str:
        """Read one daemon setting."""
        response = await self._require_transport().post(GET_ENDPOINT, {"key": key})
        value = response.get("value")
        if not isinstance(value, str):
            raise TransportError(f"Missing 'value' for setting {key!r}", endpoint=GET_ENDPOINT)
        return value

    async def set_setting(self, key: str, value: str) -> None:
        """Write one daemon setting.

        Raises :class:`WriteFailedError` when the daemon rejects the value.
        """
        try:
            await self._require_transport().post(SET_ENDPOINT, {"key": key, "value": value})
        except TransportError as exc:
            if exc.status_code is None:
                raise
            raise WriteFailedError(
                f"Daemon rejected {key}={redact_setting(key, value)!r}: {exc}",
                status_code=exc.status_code,
                endpoint=SET_ENDPOINT,
            ) from exc

    async def list_networks(self) -> list[NetworkInterface]:
        """List host interfaces that instances can be bridged to."""
        response = await self._require_transport().post(NETWORKS_ENDPOINT, {})
        items = response.get("interfaces") or []
        if not isinstance(items, list):
            raise TransportError("'interfaces' must be a list", endpoint=NETWORKS_ENDPOINT)
        return [NetworkInterface.model_validate(item) for item in items if isinstance(item, dict)]
