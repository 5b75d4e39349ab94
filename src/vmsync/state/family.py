"""Keyed autodispose caches.

A :class:`Family` hands out one live node per key.  The node exists while
someone observes it; when the last observer leaves, or when nobody
subscribed by the end of the loop iteration that created it, it is
disposed and the next access builds a fresh one.  A handle kept past
disposal reads through to the fresh entry.  Rebuilding is always correct
because builds only derive from the graph and the backing stores.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Iterator
from typing import Any, Generic, TypeVar

from vmsync.state.graph import Build, BuildScope, Graph, Node, Subscription
from vmsync.state.policy import Equality, structural

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class Family(Generic[K, T]):
    """Mapping from key to an autodispose node built by ``build(scope, key, *dep_values)``."""

    def __init__(
        self,
        graph: Graph,
        name: str,
        build: Build,
        *,
        deps: Iterable[Node[Any]] = (),
        equals: Equality = structural,
    ) -> None:
        self._graph = graph
        self.name = name
        self._build = build
        self._deps = tuple(deps)
        self._equals = equals
        self._entries: dict[K, Node[T]] = {}

    def __call__(self, key: K) -> Node[T]:
        """Live node for *key*, created on first access."""
        node = self._entries.get(key)
        if node is not None and not node.disposed:
            return node

        def build(scope: BuildScope, *values: Any) -> T:
            result: T = self._build(scope, key, *values)
            return result

        node = self._graph.node(
            f"{self.name}({key!r})",
            self._deps,
            build,
            equals=self._equals,
            autodispose=True,
            revive=lambda: self(key),
        )
        node.on_dispose(lambda: self._forget(key, node))
        self._entries[key] = node
        return node

    def _forget(self, key: K, node: Node[T]) -> None:
        if self._entries.get(key) is node:
            del self._entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._entries))

    def peek(self, key: K) -> Node[T] | None:
        """Live node for *key* without creating one."""
        return self._entries.get(key)

    def read(self, key: K) -> T:
        """One-off read; an entry nobody observes is disposed right away."""
        node = self(key)
        try:
            return node.get()
        finally:
            self._graph.dispose_if_unused(node)

    def subscribe(
        self,
        key: K,
        listener: Callable[[T], None],
        *,
        fire_immediately: bool = False,
    ) -> Subscription:
        return self(key).subscribe(listener, fire_immediately=fire_immediately)

    def invalidate(self, key: K) -> bool:
        """Force the live entry for *key* to rebuild; False when there is none."""
        node = self._entries.get(key)
        if node is None or node.disposed:
            return False
        node.invalidate()
        return True
