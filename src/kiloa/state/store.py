"""Storage interfaces.

The ingestion engine and the read endpoints only talk to these protocols;
:mod:`kiloa.state.memory` and :mod:`kiloa.state.sql` provide the backends.
A store is created once at process start and injected where needed.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol

from kiloa.models.history import HistorySample
from kiloa.models.node import Node
from kiloa.models.report import NodePatch


class NodeStore(Protocol):
    """Current-state rows keyed by node identifier. Rows are never deleted."""

    def get(self, node_id: str) -> Node | None: ...

    def upsert(self, node_id: str, patch: NodePatch, *, now: datetime) -> Node:
        """Create the node, or coalesce *patch* into the stored row. Returns the stored row."""
        ...

    def list_all(self) -> list[Node]:
        """All nodes, most recently seen first."""
        ...


class HistoryStore(Protocol):
    """Append-only per-node time series with retention pruning."""

    def last_sample_time(self, node_id: str) -> datetime | None: ...

    def append(self, sample: HistorySample) -> HistorySample:
        """Insert *sample*; the returned copy carries the assigned ``id``."""
        ...

    def range(self, node_id: str, since: datetime) -> list[HistorySample]:
        """Samples of *node_id* with ``timestamp >= since``, oldest first."""
        ...

    def prune(self, older_than: datetime) -> int:
        """Delete samples with ``timestamp < older_than`` for every node; return the count."""
        ...


class Store(Protocol):
    @property
    def nodes(self) -> NodeStore: ...

    @property
    def history(self) -> HistoryStore: ...

    def transaction(self) -> AbstractContextManager[None]:
        """Group node and history writes so they apply together or not at all."""
        ...

    def close(self) -> None: ...
