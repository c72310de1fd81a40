"""History samples and chart lookback windows."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

from kiloa.exceptions import KiloaValidationError
from kiloa.models._base import KiloaBaseModel, UtcDatetime


class HistorySample(KiloaBaseModel):
    """One retained point of a node's time series.

    ``net_in`` is the node's download rate and ``net_out`` its upload rate
    at the time the sample was taken.
    """

    node_id: str
    timestamp: UtcDatetime
    load_1: float = 0.0
    mem_percent: float = 0.0
    disk_percent: float = 0.0
    net_in: float = 0.0
    net_out: float = 0.0
    id: int | None = None


class HistoryRange(StrEnum):
    """Named lookback windows offered to chart consumers."""

    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @property
    def window(self) -> timedelta:
        return _WINDOWS[self]

    def cutoff(self, now: datetime) -> datetime:
        return now - self.window

    @classmethod
    def parse(cls, value: str | None) -> HistoryRange:
        """Map a query-string value to a range; ``None``/empty selects 24h."""
        if value is None or not value.strip():
            return cls.DAY
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise KiloaValidationError(f"range must be one of {choices}, got {value!r}") from exc


_WINDOWS: dict[HistoryRange, timedelta] = {
    HistoryRange.DAY: timedelta(hours=24),
    HistoryRange.WEEK: timedelta(days=7),
    HistoryRange.MONTH: timedelta(days=30),
}
