"""Daemon-backed settings.

Reads follow daemon reachability: while the daemon is unavailable an entry
never resolves to a value it cannot verify.  It keeps showing the last
value it fetched, or stays :class:`~vmsync.state.values.Pending` if it never
fetched one, and fetches again as soon as the daemon is back.

Writes are fire-and-forget.  Whatever the outcome, the entry is
invalidated a short delay after the write finishes so the next read
reflects what the daemon actually stored.  Write failures are logged at
DEBUG and otherwise dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from vmsync._constants import WRITE_INVALIDATE_DELAY
from vmsync._redact import redact_setting
from vmsync.client import RemoteClient
from vmsync.state.family import Family
from vmsync.state.graph import BuildScope, Graph, Node, Subscription
from vmsync.state.values import AsyncValue, Data, Failure, Pending, carry_over

_logger = logging.getLogger(__name__)


class RemoteSettings:
    """Keyed cache of daemon settings."""

    def __init__(
        self,
        graph: Graph,
        client: RemoteClient,
        availability: Node[bool],
        *,
        invalidate_delay: float = WRITE_INVALIDATE_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._invalidate_delay = invalidate_delay
        self._sleep = sleep
        self._family: Family[str, AsyncValue[str]] = Family(
            graph,
            "remote_setting",
            self._build,
            deps=[availability],
        )
        self._writes: set[asyncio.Task[None]] = set()

    def _build(self, scope: BuildScope, key: str, available: bool) -> AsyncValue[str]:
        kept = carry_over(scope.previous)
        if not available:
            return Pending() if kept is None else Data(kept)
        scope.spawn(self._fetch(scope, key))
        return Pending(previous=kept)

    async def _fetch(self, scope: BuildScope, key: str) -> None:
        try:
            value = await self._client.get_setting(key)
        except Exception as exc:
            _logger.debug("Reading daemon setting %s failed", key, exc_info=True)
            scope.publish(Failure(exc, previous=carry_over(scope.previous)))
            return
        _logger.debug("Daemon setting %s=%r", key, redact_setting(key, value))
        scope.publish(Data(value))

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def node(self, key: str) -> Node[AsyncValue[str]]:
        return self._family(key)

    def subscribe(
        self,
        key: str,
        listener: Callable[[AsyncValue[str]], None],
        *,
        fire_immediately: bool = False,
    ) -> Subscription:
        return self._family.subscribe(key, listener, fire_immediately=fire_immediately)

    async def get(self, key: str) -> str:
        """Resolved value of *key*.

        Suspends until the daemon answers, which is forever while it is
        unreachable and nothing was fetched before.  Raises the daemon's
        error when the read itself fails.
        """
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()

        def _resolve(value: AsyncValue[str]) -> None:
            if future.done():
                return
            if isinstance(value, Data):
                future.set_result(value.value)
            elif isinstance(value, Failure):
                future.set_exception(value.error)

        subscription = self._family.subscribe(key, _resolve, fire_immediately=True)
        try:
            return await future
        finally:
            subscription.dispose()

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def set(self, key: str, value: str) -> asyncio.Task[None]:
        """Write *key* on the daemon in the background.

        The returned task never raises for a failed write; callers may
        ignore it.
        """
        task = asyncio.get_running_loop().create_task(self._write(key, value))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)
        return task

    async def _write(self, key: str, value: str) -> None:
        try:
            await self._client.set_setting(key, value)
        except Exception:
            _logger.debug("Writing daemon setting %s=%r failed", key, redact_setting(key, value), exc_info=True)
        await self._sleep(self._invalidate_delay)
        self._family.invalidate(key)

    async def close(self) -> None:
        """Cancel writes still waiting on the daemon or their invalidation."""
        writes = list(self._writes)
        for task in writes:
            task.cancel()
        if writes:
            await asyncio.gather(*writes, return_exceptions=True)
