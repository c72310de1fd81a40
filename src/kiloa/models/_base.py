"""Base model for kiloa records.

Every kiloa model inherits from :class:`KiloaBaseModel` which provides:

* frozen instances, so stored rows and samples are never mutated in place
* ``extra="ignore"`` so agents may send keys the dashboard does not store
* a ``model_validator(mode="before")`` that drops placeholder values
  (``None``, ``""``, NaN) so the field default is used instead
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, model_validator


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
"""Annotated datetime that is always timezone-aware UTC."""


def is_placeholder(value: Any) -> bool:
    """Return ``True`` for values that mean "not reported"."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return isinstance(value, float) and math.isnan(value)


class KiloaBaseModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_placeholders(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if not is_placeholder(value)}
