"""Result type for asynchronously produced cache values.

A node whose value comes from an I/O call is in exactly one of three
states:

* :class:`Pending` - no answer yet.  Waiting on an unreachable daemon is
  modelled as a ``Pending`` that simply never resolves, not as an error.
* :class:`Data` - resolved.
* :class:`Failure` - the producing call failed.

``Pending`` and ``Failure`` may carry the last resolved value as
``previous`` so consumers can keep showing it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Pending(Generic[T]):
    previous: T | None = None

    @property
    def value_or_none(self) -> T | None:
        return self.previous


@dataclass(frozen=True, slots=True)
class Data(Generic[T]):
    value: T

    @property
    def value_or_none(self) -> T | None:
        return self.value


@dataclass(frozen=True, slots=True)
class Failure(Generic[T]):
    error: BaseException
    previous: T | None = None

    @property
    def value_or_none(self) -> T | None:
        return self.previous


AsyncValue: TypeAlias = Pending[T] | Data[T] | Failure[T]


def carry_over(value: AsyncValue[T] | None) -> T | None:
    """Value to keep visible when moving to ``Pending``/``Failure``."""
    if value is None:
        return None
    return value.value_or_none
