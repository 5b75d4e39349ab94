from __future__ import annotations

import pytest

from helpers import FakeDaemon, make_snapshot
from vmsync.exceptions import TransportError


@pytest.fixture
def daemon() -> FakeDaemon:
    return FakeDaemon(
        snapshot=make_snapshot(primary=0, builder=3),
        settings={"local.driver": "qemu", "local.passphrase": "hunter2"},
    )


@pytest.fixture
def unreachable() -> TransportError:
    return TransportError("connection refused", endpoint="/v1/info")
