"""Persisted-store-backed settings.

This component is the only writer of its store, so a write updates the
cached value directly and no invalidation round-trip is needed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from vmsync.exceptions import InitializationError
from vmsync.settings.backends import KeyValueStore
from vmsync.state.family import Family
from vmsync.state.graph import BuildScope, Graph, Node, Subscription

_logger = logging.getLogger(__name__)


class StoreSettings:
    """Keyed cache over the injected :class:`KeyValueStore`."""

    def __init__(self, graph: Graph, store: KeyValueStore | None = None) -> None:
        self._store = store
        self._family: Family[str, str | None] = Family(graph, "store_setting", self._build)

    @property
    def installed(self) -> bool:
        return self._store is not None

    def install(self, store: KeyValueStore) -> None:
        if self._store is not None and self._store is not store:
            _logger.warning("Replacing the installed settings store")
        self._store = store
        for key in self._family:
            self._family.invalidate(key)

    def _require_store(self) -> KeyValueStore:
        if self._store is None:
            raise InitializationError("Settings store accessed before install_store() was called")
        return self._store

    def _build(self, _scope: BuildScope, key: str) -> str | None:
        return self._require_store().get_string(key)

    def node(self, key: str) -> Node[str | None]:
        self._require_store()
        return self._family(key)

    def subscribe(
        self,
        key: str,
        listener: Callable[[str | None], None],
        *,
        fire_immediately: bool = False,
    ) -> Subscription:
        return self.node(key).subscribe(listener, fire_immediately=fire_immediately)

    def get(self, key: str) -> str | None:
        store = self._require_store()
        node = self._family.peek(key)
        if node is not None:
            return node.get()
        return store.get_string(key)

    def set(self, key: str, value: str) -> None:
        self._require_store().set_string(key, value)
        node = self._family.peek(key)
        if node is not None:
            node.publish(value)
