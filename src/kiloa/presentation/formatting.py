"""Human-readable renderings of stored numbers."""

from __future__ import annotations

from datetime import datetime

from kiloa._constants import BYTES_PER_GB, UNKNOWN_LABEL
from kiloa.ingestion.normalize import ratio_percent

_BYTE_UNITS: tuple[str, ...] = ("B", "K", "M", "G", "T")
_SECONDS_PER_DAY = 86_400
_SECONDS_PER_HOUR = 3_600


def format_bytes(num_bytes: float) -> str:
    """Render a byte count with binary units, e.g. ``1536`` -> ``"1.5 K"``.

    The largest unit whose value is at least 1 is used, capped at ``T``.
    Plain byte counts are printed without decimals and zero is ``"0 B"``.
    """
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    if unit == 0:
        return f"{int(num_bytes)} B"
    return f"{value:.1f} {_BYTE_UNITS[unit]}"


def bytes_to_gb(num_bytes: int) -> float:
    return round(num_bytes / BYTES_PER_GB, 2)


def usage_percent(used: float, total: float) -> float:
    """Percentage with one decimal, ``0.0`` when *total* is zero."""
    return round(ratio_percent(used, total), 1)


def format_uptime(boot_time: int | None, now: datetime) -> str:
    """``"<days> days, <hours> hours"`` since *boot_time* (epoch seconds)."""
    if not boot_time:
        return UNKNOWN_LABEL
    elapsed = max(0.0, now.timestamp() - boot_time)
    days = int(elapsed // _SECONDS_PER_DAY)
    hours = int((elapsed % _SECONDS_PER_DAY) // _SECONDS_PER_HOUR)
    return f"{days} days, {hours} hours"
