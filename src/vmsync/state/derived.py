"""Projections of the polled daemon status.

Everything here is a pure function of the ``status_stream`` source that the
poller feeds.  The node functions are exposed at module level so they can
be tested without a graph.
"""

from __future__ import annotations

from typing import Any

from vmsync.models.instance import Snapshot, Status, VmInfo
from vmsync.state.family import Family
from vmsync.state.graph import BuildScope, Graph, Node, Source
from vmsync.state.policy import identical
from vmsync.state.values import AsyncValue, Failure, Pending

EMPTY_SNAPSHOT: Snapshot = ()
EMPTY_RECORD = VmInfo()


def is_available(event: AsyncValue[Snapshot]) -> bool:
    """False while the latest poll outcome is an error."""
    return not isinstance(event, Failure)


def latest_snapshot(event: AsyncValue[Snapshot]) -> Snapshot:
    """Last successful snapshot, kept across failures."""
    snapshot = event.value_or_none
    return EMPTY_SNAPSHOT if snapshot is None else snapshot


def index_by_name(snapshot: Snapshot) -> dict[str, VmInfo]:
    return {info.name: info for info in snapshot}


def statuses(records: dict[str, VmInfo]) -> dict[str, Status]:
    return {name: info.instance_status.status for name, info in records.items()}


def names(statuses_by_name: dict[str, Status]) -> frozenset[str]:
    return frozenset(statuses_by_name)


def _entity(_scope: BuildScope, key: str, records: dict[str, VmInfo]) -> VmInfo:
    return records.get(key, EMPTY_RECORD)


class StatusGraph:
    """The status-derived nodes of one context.

    Derived maps are published as plain ``dict``/``frozenset`` objects that
    are never mutated after publication; treat them as read-only.
    """

    def __init__(self, graph: Graph) -> None:
        self.status_stream: Source[AsyncValue[Snapshot]] = graph.source(
            "status_stream",
            Pending(),
            equals=identical,
        )
        self.availability: Node[bool] = graph.derived("availability", [self.status_stream], is_available)
        self.all_records: Node[Snapshot] = graph.derived(
            "all_records",
            [self.status_stream],
            latest_snapshot,
            equals=identical,
        )
        self.records_by_name: Node[dict[str, VmInfo]] = graph.derived(
            "records_by_name",
            [self.all_records],
            index_by_name,
        )
        self.statuses_by_name: Node[dict[str, Status]] = graph.derived(
            "statuses_by_name",
            [self.records_by_name],
            statuses,
        )
        self.names: Node[frozenset[str]] = graph.derived("names", [self.statuses_by_name], names)
        self.entity: Family[str, VmInfo] = Family(graph, "entity", _entity, deps=[self.records_by_name])

    def nodes(self) -> dict[str, Node[Any]]:
        return {
            "status_stream": self.status_stream,
            "availability": self.availability,
            "all_records": self.all_records,
            "records_by_name": self.records_by_name,
            "statuses_by_name": self.statuses_by_name,
            "names": self.names,
        }
