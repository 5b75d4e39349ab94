"""Change-detection policy for cache nodes.

A node publishes a new value only when its equality policy says the value
changed.  Unchanged outputs keep the previously published object, so
downstream nodes never recompute for a structurally identical input.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

Equality = Callable[[Any, Any], bool]


def structural(previous: Any, current: Any) -> bool:
    """Deep equality (``==``), the default for derived values."""
    return bool(previous == current)


def identical(previous: Any, current: Any) -> bool:
    """Reference equality, for values whose identity is their version.

    Snapshots are immutable and produced once per poll, so a new object
    means a new poll even when its contents match the previous one.
    """
    return previous is current


def should_notify(equals: Equality, previous: Any, current: Any) -> bool:
    """Whether observers of a node must hear about *current*."""
    return not equals(previous, current)
