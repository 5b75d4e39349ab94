from __future__ import annotations

from typing import Any

import pytest

from helpers import make_snapshot, settle
from vmsync.exceptions import UnavailableError
from vmsync.models.instance import Status, VmInfo
from vmsync.state import derived
from vmsync.state.derived import EMPTY_RECORD, StatusGraph
from vmsync.state.graph import Graph
from vmsync.state.values import Data, Failure, Pending


@pytest.fixture
def status() -> StatusGraph:
    return StatusGraph(Graph())


class TestProjections:
    def test_initial_state_is_empty_and_available(self, status: StatusGraph) -> None:
        assert status.availability.get() is True
        assert status.all_records.get() == ()
        assert status.records_by_name.get() == {}
        assert status.names.get() == frozenset()

    def test_projections_follow_the_latest_snapshot(self, status: StatusGraph) -> None:
        status.status_stream.set(Data(make_snapshot(a=0, b=3)))

        assert status.statuses_by_name.get() == {"a": Status.RUNNING, "b": Status.STOPPED}
        assert status.names.get() == frozenset({"a", "b"})
        assert status.records_by_name.get()["b"].status is Status.STOPPED

    def test_failure_keeps_last_snapshot_visible(self, status: StatusGraph) -> None:
        snapshot = make_snapshot(a=0)
        status.status_stream.set(Data(snapshot))
        status.status_stream.set(Failure(UnavailableError("down"), previous=snapshot))

        assert status.availability.get() is False
        assert status.all_records.get() is snapshot
        assert status.names.get() == frozenset({"a"})

    def test_unknown_status_code_maps_to_unknown(self) -> None:
        info = VmInfo.model_validate({"name": "odd", "instanceStatus": {"status": 42}})
        assert derived.statuses({"odd": info}) == {"odd": Status.UNKNOWN}


class TestSnapshotIdentity:
    def test_new_snapshot_object_recomputes_but_does_not_propagate(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        indexed: list[int] = []
        real_index = derived.index_by_name

        def counting_index(snapshot: Any) -> dict[str, VmInfo]:
            indexed.append(len(snapshot))
            return real_index(snapshot)

        monkeypatch.setattr(derived, "index_by_name", counting_index)
        status = StatusGraph(Graph())
        statuses_seen: list[dict[str, Status]] = []
        status.statuses_by_name.subscribe(statuses_seen.append)
        first = status.records_by_name.get()

        status.status_stream.set(Data(make_snapshot(a=0)))
        after_first_poll = status.records_by_name.get()
        status.status_stream.set(Data(make_snapshot(a=0)))

        assert indexed == [0, 1, 1]
        assert after_first_poll is not first
        assert status.records_by_name.get() is after_first_poll
        assert statuses_seen == [{"a": Status.RUNNING}]

    def test_same_snapshot_object_does_not_recompute(self, monkeypatch: pytest.MonkeyPatch) -> None:
        indexed: list[int] = []
        real_index = derived.index_by_name
        monkeypatch.setattr(
            derived,
            "index_by_name",
            lambda snapshot: indexed.append(len(snapshot)) or real_index(snapshot),
        )
        status = StatusGraph(Graph())
        status.records_by_name.subscribe(lambda _value: None)
        snapshot = make_snapshot(a=0)

        status.status_stream.set(Data(snapshot))
        # A failure carrying the same snapshot leaves the records untouched.
        status.status_stream.set(Failure(UnavailableError("down"), previous=snapshot))

        assert indexed == [0, 1]


class TestEntity:
    def test_missing_instance_reads_as_empty_record(self, status: StatusGraph) -> None:
        assert isinstance(status.status_stream.get(), Pending)

        record = status.entity.read("missing-vm")

        assert record == EMPTY_RECORD
        assert record.name == ""
        assert record.status is Status.UNKNOWN
        assert "missing-vm" not in status.entity

    def test_entity_notified_only_when_its_record_changes(self, status: StatusGraph) -> None:
        seen: list[VmInfo] = []
        status.entity.subscribe("a", seen.append)

        status.status_stream.set(Data(make_snapshot(a=0, b=0)))
        status.status_stream.set(Data(make_snapshot(a=0, b=3)))
        status.status_stream.set(Data(make_snapshot(a=3, b=3)))

        assert [info.status for info in seen] == [Status.RUNNING, Status.STOPPED]

    def test_removed_instance_falls_back_to_empty_record(self, status: StatusGraph) -> None:
        seen: list[VmInfo] = []
        status.status_stream.set(Data(make_snapshot(a=0)))
        status.entity.subscribe("a", seen.append, fire_immediately=True)

        status.status_stream.set(Data(make_snapshot(b=0)))

        assert [info.name for info in seen] == ["a", ""]

    def test_entries_are_disposed_with_their_last_observer(self, status: StatusGraph) -> None:
        subscription = status.entity.subscribe("a", lambda _value: None)
        assert "a" in status.entity

        subscription.dispose()

        assert "a" not in status.entity
        assert len(status.entity) == 0

    @pytest.mark.asyncio
    async def test_entities_read_without_subscribing_are_collected(self, status: StatusGraph) -> None:
        status.status_stream.set(Data(make_snapshot(vm7=0)))

        for index in range(500):
            status.entity(f"vm{index}").get()
        assert len(status.entity) == 500

        await settle()

        assert len(status.entity) == 0
        assert status.entity("vm7").get().status == Status.RUNNING

    @pytest.mark.asyncio
    async def test_entity_handle_survives_another_observer_leaving(self, status: StatusGraph) -> None:
        status.status_stream.set(Data(make_snapshot(a=0)))
        kept = status.entity("a")
        status.entity.subscribe("a", lambda _value: None).dispose()

        await settle()
        status.status_stream.set(Data(make_snapshot(a=3)))

        assert kept.get().status == Status.STOPPED
