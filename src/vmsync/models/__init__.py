"""Data models for daemon responses."""

from vmsync.models._base import VmBaseModel, VmEnum
from vmsync.models.instance import InstanceStatus, MountInfo, Snapshot, Status, VmInfo, parse_snapshot
from vmsync.models.network import NetworkInterface

__all__ = [
    "InstanceStatus",
    "MountInfo",
    "NetworkInterface",
    "Snapshot",
    "Status",
    "VmBaseModel",
    "VmEnum",
    "VmInfo",
    "parse_snapshot",
]
