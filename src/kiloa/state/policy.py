"""History sampling policy.

Pure decisions only; the engine owns the reads and writes they are based on.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from kiloa._constants import EPOCH


def should_record_sample(
    *,
    last_sample_at: datetime | None,
    now: datetime,
    throttle: timedelta,
) -> bool:
    """Return ``True`` when at least *throttle* has passed since the last sample.

    A node without history is treated as last sampled at the Unix epoch.
    """
    if last_sample_at is None:
        last_sample_at = EPOCH
    return now - last_sample_at >= throttle


def retention_cutoff(now: datetime, retention: timedelta) -> datetime:
    """Samples strictly older than the returned instant are eligible for pruning."""
    return now - retention
