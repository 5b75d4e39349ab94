"""Dependency graph of cached, lazily recomputed nodes.

The graph is an explicit DAG stored in an append-only arena.  A node may
only depend on nodes created before it, so arena order is a topological
order and a single forward sweep from the changed node recomputes every
dependent exactly once, after all of its inputs.

Each node holds ``(value, dirty, listeners, refcount)``:

* Observed nodes (``refcount > 0``) are recomputed eagerly during a sweep
  so their listeners can be notified.  Listeners run only after the whole
  sweep finished, so no listener can see a half-updated graph.
* Unobserved nodes are only marked dirty and recompute on the next read.
* A node whose new output equals the old one (per its equality policy)
  keeps the old object and stops the sweep along that path.

Observing a node observes its dependencies.  When the last observer of an
``autodispose`` node leaves, the node is disposed: its build scope is torn
down and its arena slot freed.

A live node also holds its dependencies from creation until its own
disposal, so a dependency is never disposed under a node that can still
read it.  An ``autodispose`` node that nobody subscribes to is collected
at the end of the event-loop iteration it was created in.  Handles to a
collected node can be given a ``revive`` factory; reading or subscribing
through such a handle goes to the factory's live node.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable
from typing import Any, Generic, TypeVar

from vmsync.exceptions import GraphError
from vmsync.state.policy import Equality, should_notify, structural

_logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[Any], None]
Build = Callable[..., Any]

# Free arena slots tolerated before the arena is compacted.
_COMPACT_THRESHOLD = 64


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


_UNSET: Any = _Unset()


class BuildScope:
    """Handle passed to a node build.

    Owns the tasks and cleanup callbacks started by one computation of one
    node.  The scope is torn down when the node recomputes or is disposed;
    after that, publishing or invalidating through it is a no-op, so a late
    timer can never touch a value it no longer belongs to.
    """

    __slots__ = ("_graph", "_node", "_tasks", "_disposers", "_active")

    def __init__(self, graph: Graph, node: Node[Any]) -> None:
        self._graph = graph
        self._node = node
        self._tasks: set[asyncio.Task[Any]] = set()
        self._disposers: list[Callable[[], None]] = []
        self._active = True

    @property
    def active(self) -> bool:
        return self._active and self._node._scope is self

    @property
    def previous(self) -> Any:
        """Value of the node before this build, or ``None`` on first build."""
        value = self._node._value
        return None if value is _UNSET else value

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run *coro* for as long as this scope lives."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Background task of %s failed", self._node.name, exc_info=exc)

    def on_dispose(self, callback: Callable[[], None]) -> None:
        self._disposers.append(callback)

    def publish(self, value: Any) -> None:
        """Replace the node's value from outside its build (e.g. a fetch result)."""
        if not self.active or self._node._dirty:
            return
        self._graph._publish(self._node, value)

    def invalidate_self(self) -> None:
        if self.active:
            self._graph._invalidate(self._node)

    def dispose(self) -> None:
        if not self._active:
            return
        self._active = False
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        disposers, self._disposers = self._disposers, []
        for callback in disposers:
            callback()


class Subscription:
    """Registration of one listener; :meth:`dispose` removes it."""

    __slots__ = ("_node", "_listener_id")

    def __init__(self, node: Node[Any], listener_id: int) -> None:
        self._node: Node[Any] | None = node
        self._listener_id = listener_id

    @property
    def active(self) -> bool:
        return self._node is not None

    def dispose(self) -> None:
        node, self._node = self._node, None
        if node is not None:
            node._graph._unsubscribe(node, self._listener_id)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.dispose()


class Node(Generic[T]):
    """One cached value in the graph."""

    def __init__(
        self,
        graph: Graph,
        index: int,
        name: str,
        deps: tuple[Node[Any], ...],
        build: Build,
        *,
        equals: Equality = structural,
        autodispose: bool = False,
        revive: Callable[[], Node[T]] | None = None,
    ) -> None:
        self._graph = graph
        self._index = index
        self.name = name
        self.deps = deps
        self._build = build
        self.equals = equals
        self.autodispose = autodispose
        self._value: Any = _UNSET
        self._dirty = True
        self._listeners: dict[int, Listener] = {}
        self._next_listener_id = 0
        self._refcount = 0
        # live nodes listing this one as a dependency
        self._holders = 0
        self._revive = revive
        self._scope: BuildScope | None = None
        self._on_dispose: list[Callable[[], None]] = []
        self.disposed = False

    def __repr__(self) -> str:
        state = "disposed" if self.disposed else f"refs={self._refcount}"
        return f"<Node {self.name} #{self._index} {state}>"

    @property
    def observed(self) -> bool:
        return self._refcount > 0

    def get(self) -> T:
        """Current value, computing it first if it is stale."""
        if self.disposed and self._revive is not None:
            return self._revive().get()
        value: T = self._graph._ensure(self)
        return value

    def subscribe(self, listener: Callable[[T], None], *, fire_immediately: bool = False) -> Subscription:
        """Call *listener* with every new value until the subscription is disposed."""
        if self.disposed and self._revive is not None:
            return self._revive().subscribe(listener, fire_immediately=fire_immediately)
        return self._graph._subscribe(self, listener, fire_immediately=fire_immediately)

    def invalidate(self) -> None:
        """Force a rebuild (eagerly when observed, on next read otherwise)."""
        self._graph._invalidate(self)

    def publish(self, value: T) -> None:
        """Replace the value directly; the next rebuild overrides it.

        Only the component that owns the node should call this.
        """
        self._graph._publish(self, value)

    def on_dispose(self, callback: Callable[[], None]) -> None:
        self._on_dispose.append(callback)


class Source(Node[T]):
    """Graph input whose value is set from outside."""

    def __init__(self, graph: Graph, index: int, name: str, initial: T, *, equals: Equality) -> None:
        super().__init__(graph, index, name, (), self._current, equals=equals)
        self._value = initial
        self._dirty = False

    def _current(self, _scope: BuildScope) -> T:
        value: T = self._value
        return value

    def set(self, value: T) -> None:
        self.publish(value)


class Graph:
    """Arena owning all nodes of one synchronization context."""

    def __init__(self) -> None:
        self._nodes: list[Node[Any] | None] = []
        self._free = 0
        self._sweeping = 0
        self._collectable: dict[Node[Any], None] = {}
        self._collect_loop: asyncio.AbstractEventLoop | None = None

    def __len__(self) -> int:
        return len(self._nodes) - self._free

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def source(self, name: str, initial: T, *, equals: Equality = structural) -> Source[T]:
        node: Source[T] = Source(self, len(self._nodes), name, initial, equals=equals)
        self._nodes.append(node)
        return node

    def derived(
        self,
        name: str,
        deps: Iterable[Node[Any]],
        fn: Callable[..., T],
        *,
        equals: Equality = structural,
        autodispose: bool = False,
    ) -> Node[T]:
        """Pure node: ``fn(*dep_values)``."""

        def build(_scope: BuildScope, *values: Any) -> T:
            return fn(*values)

        return self.node(name, deps, build, equals=equals, autodispose=autodispose)

    def node(
        self,
        name: str,
        deps: Iterable[Node[Any]],
        build: Build,
        *,
        equals: Equality = structural,
        autodispose: bool = False,
        revive: Callable[[], Node[T]] | None = None,
    ) -> Node[T]:
        """Node built by ``build(scope, *dep_values)``.

        The build may start tasks and register cleanups through the scope.
        *revive* returns the live replacement once this node is disposed.
        """
        dep_tuple = tuple(deps)
        for dep in dep_tuple:
            if dep._graph is not self:
                raise GraphError(f"{name}: dependency {dep.name} belongs to another graph")
            if dep.disposed:
                raise GraphError(f"{name}: dependency {dep.name} is disposed")
        node: Node[T] = Node(
            self,
            len(self._nodes),
            name,
            dep_tuple,
            build,
            equals=equals,
            autodispose=autodispose,
            revive=revive,
        )
        self._nodes.append(node)
        for dep in dep_tuple:
            dep._holders += 1
        if autodispose:
            self._schedule_collect(node)
        return node

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def _schedule_collect(self, node: Node[Any]) -> None:
        self._collectable[node] = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # picked up by the next collection scheduled under a running loop
            return
        if self._collect_loop is not loop:
            self._collect_loop = loop
            loop.call_soon(self.collect)

    def collect(self) -> int:
        """Dispose autodispose nodes created since the last collection that nobody uses.

        Runs by itself at the end of the event-loop iteration; returns the
        number of nodes disposed.
        """
        self._collect_loop = None
        pending, self._collectable = list(self._collectable), {}
        disposed = 0
        for node in pending:
            if self._unused(node):
                self.dispose(node)
                disposed += 1
        if disposed:
            _logger.debug("Collected %d unobserved nodes", disposed)
        return disposed

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _ensure(self, node: Node[Any]) -> Any:
        if node.disposed:
            raise GraphError(f"{node.name} is disposed")
        if node._dirty:
            values = [self._ensure(dep) for dep in node.deps]
            if node._scope is not None:
                node._scope.dispose()
            scope = BuildScope(self, node)
            node._scope = scope
            try:
                new = node._build(scope, *values)
            except BaseException:
                scope.dispose()
                node._scope = None
                raise
            node._dirty = False
            if node._value is _UNSET or should_notify(node.equals, node._value, new):
                node._value = new
        return node._value

    def _refresh(self, node: Node[Any]) -> bool:
        """Recompute an observed node; True when its published value changed."""
        old = node._value
        node._dirty = True
        self._ensure(node)
        return node._value is not old

    def _publish(self, node: Node[Any], value: Any) -> None:
        if node.disposed:
            return
        if node._value is not _UNSET and not should_notify(node.equals, node._value, value):
            return
        node._value = value
        node._dirty = False
        self._sweep(node)

    def _invalidate(self, node: Node[Any]) -> None:
        if node.disposed:
            return
        if node.observed:
            if self._refresh(node):
                self._sweep(node)
            return
        node._dirty = True
        self._sweep(node)

    def _sweep(self, origin: Node[Any]) -> None:
        """Bring every dependent of *origin* up to date, then notify."""
        changed: set[Node[Any]] = {origin}
        notify: list[Node[Any]] = [origin] if origin._listeners and not origin._dirty else []
        self._sweeping += 1
        try:
            for node in self._nodes[origin._index + 1 :]:
                if node is None or node.disposed:
                    continue
                if not any(dep in changed for dep in node.deps):
                    continue
                if not node.observed:
                    node._dirty = True
                    changed.add(node)
                    continue
                if self._refresh(node):
                    changed.add(node)
                    if node._listeners:
                        notify.append(node)
        finally:
            self._sweeping -= 1
        for node in notify:
            self._notify(node)
        if not self._sweeping:
            self._maybe_compact()

    def _notify(self, node: Node[Any]) -> None:
        value = node._value
        for listener in list(node._listeners.values()):
            if node.disposed:
                return
            try:
                listener(value)
            except Exception:
                _logger.warning("Listener on %s failed", node.name, exc_info=True)

    # ------------------------------------------------------------------
    # Observation and disposal
    # ------------------------------------------------------------------

    def _subscribe(self, node: Node[Any], listener: Listener, *, fire_immediately: bool) -> Subscription:
        if node.disposed:
            raise GraphError(f"{node.name} is disposed")
        self._acquire(node)
        listener_id = node._next_listener_id
        node._next_listener_id += 1
        node._listeners[listener_id] = listener
        if fire_immediately:
            listener(node._value)
        return Subscription(node, listener_id)

    def _unsubscribe(self, node: Node[Any], listener_id: int) -> None:
        if node._listeners.pop(listener_id, None) is not None:
            self._release(node)

    def _acquire(self, node: Node[Any]) -> None:
        node._refcount += 1
        if node._refcount == 1:
            for dep in node.deps:
                self._acquire(dep)
            self._ensure(node)

    def _release(self, node: Node[Any]) -> None:
        node._refcount -= 1
        if node._refcount > 0:
            return
        for dep in node.deps:
            self._release(dep)
        if self._unused(node):
            self.dispose(node)

    def _unused(self, node: Node[Any]) -> bool:
        return node.autodispose and not node.disposed and node._refcount == 0 and node._holders == 0

    def dispose_if_unused(self, node: Node[Any]) -> None:
        if self._unused(node):
            self.dispose(node)

    def dispose(self, node: Node[Any]) -> None:
        """Tear a node down; its arena slot is freed.

        Dependencies that no other live node holds are disposed with it.
        """
        if node.disposed:
            return
        if node.observed:
            raise GraphError(f"{node.name} is still observed")
        if node._holders:
            raise GraphError(f"{node.name} is still a dependency of a live node")
        node.disposed = True
        self._collectable.pop(node, None)
        if node._scope is not None:
            node._scope.dispose()
            node._scope = None
        callbacks, node._on_dispose = node._on_dispose, []
        for callback in callbacks:
            callback()
        self._nodes[node._index] = None
        self._free += 1
        for dep in node.deps:
            dep._holders -= 1
            if self._unused(dep):
                self.dispose(dep)
        if not self._sweeping:
            self._maybe_compact()

    def close(self) -> None:
        """Tear down every build scope; cached values stay readable."""
        for node in self._nodes:
            if node is not None and node._scope is not None:
                node._scope.dispose()
                node._scope = None

    def _maybe_compact(self) -> None:
        if self._free < _COMPACT_THRESHOLD or self._free * 2 < len(self._nodes):
            return
        live = [node for node in self._nodes if node is not None]
        for index, node in enumerate(live):
            node._index = index
        compacted: list[Node[Any] | None] = list(live)
        self._nodes = compacted
        self._free = 0
