"""Tests for Pydantic model parsing with VmBaseModel + VmEnum."""

from __future__ import annotations

import pytest

from vmsync.models import InstanceStatus, MountInfo, NetworkInterface, Status, VmEnum, VmInfo, parse_snapshot

# ------------------------------------------------------------------
# VmEnum
# ------------------------------------------------------------------


class TestVmEnum:
    def test_unknown_value_falls_back(self) -> None:
        assert Status(99) == Status.UNKNOWN

    def test_known_value(self) -> None:
        assert Status(3) == Status.STOPPED

    def test_all_enums_have_unknown(self) -> None:
        for cls in VmEnum.__subclasses__():
            assert hasattr(cls, "UNKNOWN"), f"{cls.__name__} missing UNKNOWN"
            assert cls.UNKNOWN == -1, f"{cls.__name__}.UNKNOWN != -1"


# ------------------------------------------------------------------
# VmInfo
# ------------------------------------------------------------------


class TestVmInfo:
    SAMPLE_PAYLOAD = {
        "name": "primary",
        "instanceStatus": {"status": 0},
        "imageRelease": "24.04 LTS",
        "currentRelease": "Ubuntu 24.04.1 LTS",
        "imageHash": "a1b2c3",
        "ipv4": ["10.0.0.5", "172.17.0.1"],
        "load": [0.25, 0.1, 0.05],
        "memoryUsage": 512000000,
        "memoryTotal": 1024000000,
        "diskUsage": "--",
        "diskTotal": 5000000000,
        "cpuCount": 2,
        "mounts": [{"sourcePath": "/home/me/src", "targetPath": "/mnt/src"}],
        "zone": {"name": "zone1"},
    }

    def test_basic_parsing(self) -> None:
        info = VmInfo.model_validate(self.SAMPLE_PAYLOAD)
        assert info.name == "primary"
        assert info.status == Status.RUNNING
        assert info.image_release == "24.04 LTS"
        assert info.ipv4 == ("10.0.0.5", "172.17.0.1")
        assert info.load == (0.25, 0.1, 0.05)
        assert info.cpu_count == 2

    def test_nested_models(self) -> None:
        info = VmInfo.model_validate(self.SAMPLE_PAYLOAD)
        assert info.instance_status == InstanceStatus(status=Status.RUNNING)
        assert len(info.mounts) == 1
        assert isinstance(info.mounts[0], MountInfo)
        assert info.mounts[0].source_path == "/home/me/src"
        assert info.mounts[0].target_path == "/mnt/src"

    def test_sentinels_become_defaults(self) -> None:
        info = VmInfo.model_validate(self.SAMPLE_PAYLOAD)
        assert info.disk_usage is None
        assert VmInfo.model_validate({"name": "x", "imageRelease": ""}).image_release == ""

    def test_unknown_status_falls_back(self) -> None:
        info = VmInfo.model_validate({"name": "x", "instanceStatus": {"status": 99}})
        assert info.status == Status.UNKNOWN

    def test_raw_keeps_payload(self) -> None:
        info = VmInfo.model_validate(self.SAMPLE_PAYLOAD)
        assert info.raw["zone"] == {"name": "zone1"}

    def test_name_is_stripped(self) -> None:
        assert VmInfo.model_validate({"name": " primary "}).name == "primary"

    def test_defaults_are_empty(self) -> None:
        info = VmInfo()
        assert info.name == ""
        assert info.status == Status.UNKNOWN
        assert info.ipv4 == ()
        assert info.memory_total is None

    def test_frozen(self) -> None:
        info = VmInfo(name="x")
        with pytest.raises(ValueError):
            info.name = "y"  # type: ignore[misc]

    def test_structural_equality(self) -> None:
        assert VmInfo.model_validate(self.SAMPLE_PAYLOAD) == VmInfo.model_validate(dict(self.SAMPLE_PAYLOAD))

    def test_populate_by_name(self) -> None:
        info = VmInfo(name="x", cpu_count=4)
        assert info.cpu_count == 4


# ------------------------------------------------------------------
# Snapshot and networks
# ------------------------------------------------------------------


class TestParseSnapshot:
    def test_parses_instances_in_order(self) -> None:
        snapshot = parse_snapshot(
            {"instances": [{"name": "b", "instanceStatus": {"status": 3}}, {"name": "a"}]}
        )
        assert isinstance(snapshot, tuple)
        assert [info.name for info in snapshot] == ["b", "a"]
        assert snapshot[0].status == Status.STOPPED
        assert snapshot[1].status == Status.UNKNOWN

    def test_missing_instances_is_empty(self) -> None:
        assert parse_snapshot({}) == ()
        assert parse_snapshot({"instances": None}) == ()

    def test_non_object_items_are_skipped(self) -> None:
        assert [info.name for info in parse_snapshot({"instances": ["junk", {"name": "a"}]})] == ["a"]

    def test_non_list_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_snapshot({"instances": {"name": "a"}})


class TestNetworkInterface:
    def test_parsing(self) -> None:
        interface = NetworkInterface.model_validate({"name": "eth0", "type": "ethernet", "description": "Wired"})
        assert interface.name == "eth0"
        assert interface.type == "ethernet"

    def test_extra_fields_ignored(self) -> None:
        assert NetworkInterface.model_validate({"name": "eth0", "speed": 1000}).name == "eth0"
