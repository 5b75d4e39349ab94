"""Status polling ingestion.

This module owns the loop that turns the daemon's request/response
``fetch_status`` call into a continuous stream of snapshots.

Pacing: the next call starts no earlier than ``interval`` after the start
of the previous one, and always at least ``cooldown`` after the previous
one finished, so the spacing between call starts is
``max(interval, call_duration) + cooldown``.

Errors: the same error object raised by consecutive polls is surfaced
(and logged) only once; the stream stays in its error state until a poll
succeeds or fails differently.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

from vmsync._constants import POLL_COOLDOWN, POLL_INTERVAL
from vmsync.client import RemoteClient
from vmsync.models.instance import Snapshot
from vmsync.state.graph import Source
from vmsync.state.values import AsyncValue, Data, Failure

_logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]


async def poll_status(
    client: RemoteClient,
    *,
    interval: float = POLL_INTERVAL,
    cooldown: float = POLL_COOLDOWN,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> AsyncGenerator[AsyncValue[Snapshot], None]:
    """Poll the daemon forever, yielding ``Data(snapshot)`` or ``Failure(error)``.

    A ``Failure`` carries the last successful snapshot as ``previous``.
    Runs until the consumer stops iterating or the task is cancelled; a
    poll interrupted by cancellation yields nothing.
    """
    last_error: BaseException | None = None
    last_snapshot: Snapshot | None = None

    while True:
        started = clock()
        try:
            snapshot = await client.fetch_status()
        except Exception as exc:
            if exc is not last_error:
                _logger.error("Error on polling status", exc_info=exc)
                yield Failure(exc, previous=last_snapshot)
            last_error = exc
        else:
            last_error = None
            last_snapshot = snapshot
            yield Data(snapshot)

        remaining = interval - (clock() - started)
        if remaining > 0:
            await sleep(remaining)
        await sleep(cooldown)


class StatusPoller:
    """Runs :func:`poll_status` as a task feeding a graph source node."""

    def __init__(
        self,
        client: RemoteClient,
        target: Source[AsyncValue[Snapshot]],
        *,
        interval: float = POLL_INTERVAL,
        cooldown: float = POLL_COOLDOWN,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._client = client
        self._target = target
        self._interval = interval
        self._cooldown = cooldown
        self._sleep = sleep
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="vmsync-status-poller")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        _logger.debug("Status poller started (interval=%.3fs cooldown=%.3fs)", self._interval, self._cooldown)
        stream = poll_status(
            self._client,
            interval=self._interval,
            cooldown=self._cooldown,
            sleep=self._sleep,
            clock=self._clock,
        )
        try:
            async for event in stream:
                self._target.set(event)
        finally:
            await stream.aclose()
            _logger.debug("Status poller stopped")
