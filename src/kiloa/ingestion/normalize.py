"""Normalization helpers shared by ingestion and presentation."""

from __future__ import annotations


def ratio_percent(used: float, total: float) -> float:
    """``used / total * 100``, or ``0.0`` when *total* is not positive."""
    if total <= 0:
        return 0.0
    return (used / total) * 100
