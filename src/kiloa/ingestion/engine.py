"""Report ingestion.

:class:`IngestionEngine` is the only writer of node and history state. For
each accepted report it:

- coalesces the report into the node row (creating it on first sight)
- records a history sample when the node's throttle window has elapsed
- asks the maintenance policy whether to sweep expired samples

The upsert and the conditional sample insert run in one store transaction
under a per-node lock, so concurrent reports for one node record at most one
sample per window. The sweep runs after both are released.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from kiloa._constants import DEFAULT_HISTORY_THROTTLE_S, DEFAULT_RETENTION_DAYS
from kiloa._redact import redact_for_log
from kiloa.config import KiloaConfig
from kiloa.exceptions import KiloaError
from kiloa.ingestion.locks import KeyedLocks
from kiloa.ingestion.normalize import ratio_percent
from kiloa.models.history import HistorySample
from kiloa.models.node import Node
from kiloa.models.report import NodeReport
from kiloa.state.maintenance import MaintenancePolicy, ProbabilisticMaintenance, policy_from_config
from kiloa.state.policy import retention_cutoff, should_record_sample
from kiloa.state.store import Store

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class IngestResult:
    """Outcome of one accepted report."""

    node: Node
    sample: HistorySample | None = None
    pruned: int | None = None
    """Samples removed by a sweep this report triggered, ``None`` if no sweep ran."""

    @property
    def sample_recorded(self) -> bool:
        return self.sample is not None


def build_sample(report: NodeReport, *, now: datetime) -> HistorySample:
    """Turn the metrics carried by *report* into a history sample.

    Only the report itself is sampled: a metric it omits is recorded as 0,
    and a percentage is 0 unless the report sends both used and total. The
    download rate becomes ``net_in`` and the upload rate ``net_out``.
    """
    return HistorySample(
        node_id=report.node_id,
        timestamp=now,
        load_1=report.load_1 or 0.0,
        mem_percent=ratio_percent(report.mem_used or 0, report.mem_total or 0),
        disk_percent=ratio_percent(report.disk_used or 0, report.disk_total or 0),
        net_in=report.net_down or 0.0,
        net_out=report.net_up or 0.0,
    )


class IngestionEngine:
    """Applies agent reports to a :class:`~kiloa.state.store.Store`.

    Parameters
    ----------
    store
        Node and history backend, shared for the process lifetime.
    throttle
        Minimum spacing between two samples of one node.
    retention
        Age beyond which samples are removed by a sweep.
    maintenance
        Decides after each recorded sample whether to sweep now.
        Defaults to a 1% chance per sample.
    clock
        Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        store: Store,
        *,
        throttle: timedelta = timedelta(seconds=DEFAULT_HISTORY_THROTTLE_S),
        retention: timedelta = timedelta(days=DEFAULT_RETENTION_DAYS),
        maintenance: MaintenancePolicy | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._throttle = throttle
        self._retention = retention
        self._maintenance = maintenance if maintenance is not None else ProbabilisticMaintenance()
        self._clock = clock
        self._locks = KeyedLocks()

    @classmethod
    def from_config(
        cls,
        store: Store,
        config: KiloaConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> IngestionEngine:
        return cls(
            store,
            throttle=config.throttle,
            retention=config.retention,
            maintenance=policy_from_config(config),
            clock=clock,
        )

    @property
    def store(self) -> Store:
        return self._store

    def now(self) -> datetime:
        return self._clock()

    def accept_report(self, report: NodeReport | Mapping[str, Any]) -> IngestResult:
        """Apply one report.

        Raises
        ------
        KiloaValidationError
            If the report has no usable ``node_id``; nothing is written.
        KiloaStorageError
            If the store fails; the node and history are left unchanged.
        """
        parsed = NodeReport.parse(report)
        node_id = parsed.node_id
        patch = parsed.patch()
        _logger.debug("Report from %s: %s", node_id, redact_for_log(patch.changes()))

        with self._locks.hold(node_id):
            now = self._clock()
            with self._store.transaction():
                node = self._store.nodes.upsert(node_id, patch, now=now)
                last_sample_at = self._store.history.last_sample_time(node_id)
                sample: HistorySample | None = None
                if should_record_sample(last_sample_at=last_sample_at, now=now, throttle=self._throttle):
                    sample = self._store.history.append(build_sample(parsed, now=now))

        pruned: int | None = None
        if sample is not None and self._maintenance.should_sweep():
            pruned = self._sweep_quietly(now)
        return IngestResult(node=node, sample=sample, pruned=pruned)

    def prune_expired(self, now: datetime | None = None) -> int:
        """Delete every sample older than the retention horizon.

        Raises :class:`~kiloa.exceptions.KiloaStorageError` on failure.
        """
        if now is None:
            now = self._clock()
        cutoff = retention_cutoff(now, self._retention)
        deleted = self._store.history.prune(cutoff)
        if deleted:
            _logger.info("Pruned %d history samples older than %s", deleted, cutoff.isoformat())
        return deleted

    def _sweep_quietly(self, now: datetime) -> int | None:
        try:
            return self.prune_expired(now)
        except KiloaError:
            _logger.warning("Retention sweep failed; will retry on a later write", exc_info=True)
            return None
