"""Base model and enum for daemon responses.

Every daemon response model inherits from :class:`VmBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase wire keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips the ``"--"``
  placeholder the daemon uses for "not available" so the field default
  is used.
* A ``raw`` dict that captures the original payload.

State enums inherit from :class:`VmEnum` which adds an ``UNKNOWN``
member at ``-1`` and a ``_missing_`` hook that returns ``UNKNOWN``
for any value without a mapped member.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings the daemon uses for "not available".
_SENTINELS = frozenset({"", "--"})


class VmEnum(enum.IntEnum):
    """Base for daemon state enums.

    Every subclass **must** define ``UNKNOWN = -1``.
    """

    @classmethod
    def _missing_(cls, value: object) -> VmEnum:
        if hasattr(cls, "UNKNOWN"):
            unknown: VmEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))


class VmBaseModel(BaseModel):
    """Base for daemon response models.

    Instances are frozen and compare structurally, which is what the
    cache graph relies on to suppress redundant notifications.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original daemon payload."""

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip placeholder values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            cleaned[key] = value
        # Keep an explicit raw= from kwargs construction.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
