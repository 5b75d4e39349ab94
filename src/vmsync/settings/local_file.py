"""Settings-file-backed settings.

The client settings file may be rewritten by any other client process.
Each live entry therefore watches the file's directory and re-reads itself
shortly after the file is modified.  Only the first matching change is
awaited per build; the rebuild it triggers starts a fresh watch.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any

import watchfiles
from watchfiles import Change

from vmsync._constants import FILE_INVALIDATE_DELAY
from vmsync.settings.backends import SettingsFile
from vmsync.state.family import Family
from vmsync.state.graph import BuildScope, Graph, Node, Subscription

_logger = logging.getLogger(__name__)

FileChanges = set[tuple[Change, str]]
Watcher = Callable[[Path], AsyncGenerator[FileChanges, None]]


def watch_directory(directory: Path) -> AsyncGenerator[FileChanges, None]:
    """Change batches for the files directly inside *directory*."""
    return watchfiles.awatch(directory, recursive=False)


def is_settings_change(changes: Iterable[tuple[Change, str]], path: Path) -> bool:
    """True when *changes* hold a modification of exactly *path*."""
    return any(change == Change.modified and Path(changed) == path for change, changed in changes)


class FileSettings:
    """Keyed cache over the client settings file."""

    def __init__(
        self,
        graph: Graph,
        settings_file: SettingsFile,
        *,
        invalidate_delay: float = FILE_INVALIDATE_DELAY,
        watch: Watcher = watch_directory,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._file = settings_file
        self._invalidate_delay = invalidate_delay
        self._watch = watch
        self._sleep = sleep
        self._family: Family[str, str] = Family(graph, "file_setting", self._build)

    @property
    def path(self) -> Path:
        return self._file.path

    def _build(self, scope: BuildScope, key: str) -> str:
        scope.spawn(self._invalidate_on_change(scope))
        return self._file.get(key)

    async def _invalidate_on_change(self, scope: BuildScope) -> None:
        path = self._file.path
        async with contextlib.aclosing(self._watch(path.parent)) as batches:
            async for changes in batches:
                if is_settings_change(changes, path):
                    break
            else:
                return
        _logger.debug("%s modified; re-reading", path)
        await self._sleep(self._invalidate_delay)
        scope.invalidate_self()

    def node(self, key: str) -> Node[str]:
        return self._family(key)

    def subscribe(
        self,
        key: str,
        listener: Callable[[str], None],
        *,
        fire_immediately: bool = False,
    ) -> Subscription:
        return self._family.subscribe(key, listener, fire_immediately=fire_immediately)

    def get(self, key: str) -> str:
        node = self._family.peek(key)
        if node is not None:
            return node.get()
        return self._file.get(key)

    def set(self, key: str, value: str) -> None:
        """Write through to the file; a live entry re-reads immediately."""
        self._file.set(key, value)
        self._family.invalidate(key)
