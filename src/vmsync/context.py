"""Synchronization context.

:class:`SyncContext` is the one object a UI holds.  It owns the cache graph
and wires the daemon client, the settings file and the persisted store
into it; nothing in vmsync relies on process-wide state.

Usage::

    config = SyncConfig.from_env()
    async with DaemonClient(config) as client, SyncContext(client, config) as ctx:
        ctx.install_store(JsonFileStore(config.store_path))
        ctx.names.subscribe(print)
        driver = await ctx.remote_settings.get(DRIVER_KEY)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from vmsync._constants import DRIVER_KEY
from vmsync.client import RemoteClient
from vmsync.config import SyncConfig
from vmsync.ingestion.polling import Clock, StatusPoller
from vmsync.models.instance import Snapshot, Status, VmInfo
from vmsync.settings.backends import IniSettingsFile, KeyValueStore, SettingsFile
from vmsync.settings.local_file import FileSettings, Watcher, watch_directory
from vmsync.settings.persisted import StoreSettings
from vmsync.settings.remote import RemoteSettings
from vmsync.state.derived import StatusGraph
from vmsync.state.graph import BuildScope, Graph, Node
from vmsync.state.values import AsyncValue

_logger = logging.getLogger(__name__)


class SyncContext:
    """Owner of every read endpoint and write entry point."""

    def __init__(
        self,
        client: RemoteClient,
        config: SyncConfig | None = None,
        *,
        settings_file: SettingsFile | None = None,
        store: KeyValueStore | None = None,
        watch: Watcher = watch_directory,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._config = config or SyncConfig()
        self._client = client
        self.graph = Graph()
        self.status = StatusGraph(self.graph)
        self.poller = StatusPoller(
            client,
            self.status.status_stream,
            interval=self._config.poll_interval,
            cooldown=self._config.poll_cooldown,
            sleep=sleep,
            clock=clock,
        )
        self.remote_settings = RemoteSettings(
            self.graph,
            client,
            self.status.availability,
            invalidate_delay=self._config.write_invalidate_delay,
            sleep=sleep,
        )
        self.file_settings = FileSettings(
            self.graph,
            settings_file or IniSettingsFile(self._config.settings_path),
            invalidate_delay=self._config.file_invalidate_delay,
            watch=watch,
            sleep=sleep,
        )
        self.store_settings = StoreSettings(self.graph, store)
        self._networks: Node[frozenset[str]] | None = None

    @property
    def config(self) -> SyncConfig:
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SyncContext:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def start(self) -> None:
        """Start polling the daemon."""
        self.poller.start()

    async def close(self) -> None:
        """Stop polling and cancel every background task the context started."""
        await self.poller.stop()
        await self.remote_settings.close()
        self.graph.close()

    def install_store(self, store: KeyValueStore) -> None:
        """Hand over the persisted store; required before any store setting is used."""
        self.store_settings.install(store)

    # ------------------------------------------------------------------
    # Status endpoints
    # ------------------------------------------------------------------

    @property
    def availability(self) -> Node[bool]:
        return self.status.availability

    @property
    def all_records(self) -> Node[Snapshot]:
        return self.status.all_records

    @property
    def records_by_name(self) -> Node[dict[str, VmInfo]]:
        return self.status.records_by_name

    @property
    def statuses_by_name(self) -> Node[dict[str, Status]]:
        return self.status.statuses_by_name

    @property
    def names(self) -> Node[frozenset[str]]:
        return self.status.names

    def entity(self, name: str) -> Node[VmInfo]:
        """Live node for one instance; ``VmInfo()`` while it is absent."""
        return self.status.entity(name)

    def read_entity(self, name: str) -> VmInfo:
        return self.status.entity.read(name)

    # ------------------------------------------------------------------
    # Networks
    # ------------------------------------------------------------------

    def networks(self) -> Node[frozenset[str]]:
        """Names of host interfaces available for bridging.

        Empty until the daemon is reachable and reports a driver.  The node
        holds the driver entry it depends on until it is disposed itself.
        """
        node = self._networks
        if node is not None and not node.disposed:
            return node
        node = self.graph.node(
            "networks",
            [self.remote_settings.node(DRIVER_KEY), self.status.availability],
            self._build_networks,
            autodispose=True,
            revive=self.networks,
        )
        self._networks = node
        return node

    def _build_networks(self, scope: BuildScope, driver: AsyncValue[str], available: bool) -> frozenset[str]:
        if driver.value_or_none is not None and available:
            scope.spawn(self._fetch_networks(scope))
        return frozenset()

    async def _fetch_networks(self, scope: BuildScope) -> None:
        try:
            interfaces = await self._client.list_networks()
        except Exception:
            _logger.debug("Listing networks failed", exc_info=True)
            return
        scope.publish(frozenset(interface.name for interface in interfaces if interface.name))
