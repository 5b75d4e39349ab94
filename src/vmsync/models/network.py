"""Network interface model.

Mapped from the ``/v1/networks`` response: ``{"interfaces": [...]}``.
"""

from __future__ import annotations

from vmsync.models._base import VmBaseModel


class NetworkInterface(VmBaseModel):
    """A host network interface instances can be bridged to."""

    name: str = ""
    type: str = ""
    description: str = ""
