"""Shared fakes for the test suite."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from vmsync.models.instance import Snapshot, VmInfo
from vmsync.models.network import NetworkInterface


def make_snapshot(**statuses: int) -> Snapshot:
    """``make_snapshot(a=0, b=3)`` -> instances ``a`` RUNNING, ``b`` STOPPED."""
    return tuple(
        VmInfo.model_validate({"name": name, "instanceStatus": {"status": status}})
        for name, status in statuses.items()
    )


@dataclass
class FakeDaemon:
    """In-memory :class:`vmsync.client.RemoteClient`."""

    snapshot: Snapshot = ()
    settings: dict[str, str] = field(default_factory=dict)
    interfaces: list[str] = field(default_factory=lambda: ["eth0", "wlan0"])
    status_error: BaseException | None = None
    get_error: BaseException | None = None
    set_error: BaseException | None = None
    calls: dict[str, int] = field(default_factory=dict)
    writes: list[tuple[str, str]] = field(default_factory=list)

    def _record_call(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    async def fetch_status(self) -> Snapshot:
        self._record_call("fetch_status")
        await asyncio.sleep(0)
        if self.status_error is not None:
            raise self.status_error
        return self.snapshot

    async def get_setting(self, key: str) -> str:
        self._record_call("get_setting")
        await asyncio.sleep(0)
        if self.get_error is not None:
            raise self.get_error
        return self.settings[key]

    async def set_setting(self, key: str, value: str) -> None:
        self._record_call("set_setting")
        await asyncio.sleep(0)
        if self.set_error is not None:
            raise self.set_error
        self.writes.append((key, value))
        self.settings[key] = value

    async def list_networks(self) -> list[NetworkInterface]:
        self._record_call("list_networks")
        await asyncio.sleep(0)
        return [NetworkInterface(name=name) for name in self.interfaces]


class FakeWatcher:
    """Stand-in for ``watchfiles.awatch``: tests push change batches by hand."""

    def __init__(self) -> None:
        self.batches: asyncio.Queue[set[tuple[Any, str]]] = asyncio.Queue()
        self.directories: list[Path] = []
        self.active = 0

    async def watch(self, directory: Path):  # type: ignore[no-untyped-def]
        self.directories.append(directory)
        self.active += 1
        try:
            while True:
                yield await self.batches.get()
        finally:
            self.active -= 1


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
