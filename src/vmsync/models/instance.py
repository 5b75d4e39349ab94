"""Instance (VM) models.

Mapped from the ``/v1/info`` response: ``{"instances": [<VmInfo>, ...]}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from vmsync.models._base import VmBaseModel, VmEnum

__all__ = [
    "InstanceStatus",
    "MountInfo",
    "Snapshot",
    "Status",
    "VmInfo",
    "parse_snapshot",
]


class Status(VmEnum):
    """Lifecycle state of an instance."""

    UNKNOWN = -1
    RUNNING = 0
    STARTING = 1
    RESTARTING = 2
    STOPPED = 3
    DELETED = 4
    DELAYED_SHUTDOWN = 5
    SUSPENDING = 6
    SUSPENDED = 7


class InstanceStatus(VmBaseModel):
    """Nested status block of an instance."""

    status: Status = Status.UNKNOWN


class MountInfo(VmBaseModel):
    """A host directory mounted into an instance."""

    source_path: str = ""
    target_path: str = ""


class VmInfo(VmBaseModel):
    """Detailed information about one instance.

    ``VmInfo()`` (all defaults, empty ``name``) is the value handed out for
    instances that are not present in the latest snapshot.
    """

    name: str = ""
    """Unique instance name."""
    instance_status: InstanceStatus = Field(default_factory=InstanceStatus)
    image_release: str = ""
    """Release the instance was launched from (e.g. ``"24.04 LTS"``)."""
    current_release: str = ""
    """Release currently reported from inside the instance."""
    image_hash: str = ""
    ipv4: tuple[str, ...] = ()
    load: tuple[float, ...] = ()
    """1, 5 and 15 minute load averages."""
    memory_usage: int | None = None
    memory_total: int | None = None
    disk_usage: int | None = None
    disk_total: int | None = None
    cpu_count: int | None = None
    mounts: tuple[MountInfo, ...] = ()

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()

    @property
    def status(self) -> Status:
        return self.instance_status.status


Snapshot = tuple[VmInfo, ...]
"""One full point-in-time capture of the daemon's instances."""


def parse_snapshot(payload: dict[str, Any]) -> Snapshot:
    """Build an immutable snapshot from an ``/v1/info`` response body."""
    items = payload.get("instances") or []
    if not isinstance(items, list):
        raise ValueError("'instances' must be a list")
    return tuple(VmInfo.model_validate(item) for item in items if isinstance(item, dict))
