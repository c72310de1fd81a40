"""Retention-sweep triggers.

The engine asks its :class:`MaintenancePolicy` after every accepted history
write whether to run a sweep now. Policies only decide; they never prune.
For timer-driven sweeps use :class:`NeverMaintenance` on the write path and
run :func:`run_retention_loop` as a background task.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from kiloa.config import KiloaConfig
from kiloa.exceptions import KiloaError

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MaintenancePolicy(Protocol):
    def should_sweep(self) -> bool: ...


class ProbabilisticMaintenance:
    """Fire with a fixed probability per accepted history write."""

    def __init__(self, probability: float = 0.01, *, rng: Callable[[], float] = random.random) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be within [0, 1], got {probability}")
        self._probability = probability
        self._rng = rng

    def should_sweep(self) -> bool:
        return self._rng() < self._probability


class IntervalMaintenance:
    """Fire at most once per *interval*, measured from construction."""

    def __init__(self, interval: timedelta, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._interval = interval
        self._clock = clock
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def should_sweep(self) -> bool:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep < self._interval:
                return False
            self._last_sweep = now
            return True


class NeverMaintenance:
    """Never sweep inline; retention is driven externally."""

    def should_sweep(self) -> bool:
        return False


def policy_from_config(config: KiloaConfig) -> MaintenancePolicy:
    if config.prune_interval > 0:
        return NeverMaintenance()
    return ProbabilisticMaintenance(config.prune_probability)


async def run_retention_loop(sweep: Callable[[], Any], *, interval: float) -> None:
    """Call *sweep* in a worker thread every *interval* seconds until cancelled.

    Failures are logged and retried on the next tick.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            deleted = await asyncio.to_thread(sweep)
        except KiloaError:
            _logger.warning("Scheduled retention sweep failed", exc_info=True)
            continue
        _logger.debug("Scheduled retention sweep removed %s samples", deleted)
