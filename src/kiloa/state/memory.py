"""Deterministic in-memory store.

Useful for tests and for embedding kiloa without a database. All access is
serialized by one re-entrant lock; a transaction holds that lock and keeps an
undo journal so a failed ingestion leaves no visible change.
"""

from __future__ import annotations

import contextlib
import itertools
import threading
from bisect import bisect_left, insort
from collections.abc import Callable, Iterator
from datetime import datetime

from kiloa.models.history import HistorySample
from kiloa.models.node import Node
from kiloa.models.report import NodePatch

_Undo = Callable[[], None]


def _sample_time(sample: HistorySample) -> datetime:
    return sample.timestamp


def _restore_prefix(series: list[HistorySample], removed: list[HistorySample]) -> None:
    series[:0] = removed


class MemoryNodeStore:
    def __init__(self, lock: threading.RLock, journal: Callable[[_Undo], None]) -> None:
        self._lock = lock
        self._journal = journal
        self._nodes: dict[str, Node] = {}

    def get(self, node_id: str) -> Node | None:
        with self._lock:
            return self._nodes.get(node_id)

    def upsert(self, node_id: str, patch: NodePatch, *, now: datetime) -> Node:
        with self._lock:
            previous = self._nodes.get(node_id)
            if previous is None:
                node = Node.create(node_id, patch, now=now)
            else:
                node = previous.merged(patch, now=now)
            self._nodes[node_id] = node
            self._journal(lambda: self._restore(node_id, previous))
        return node

    def list_all(self) -> list[Node]:
        with self._lock:
            nodes = list(self._nodes.values())
        return sorted(nodes, key=lambda node: (node.last_seen, node.id), reverse=True)

    def _restore(self, node_id: str, previous: Node | None) -> None:
        if previous is None:
            self._nodes.pop(node_id, None)
        else:
            self._nodes[node_id] = previous


class MemoryHistoryStore:
    def __init__(self, lock: threading.RLock, journal: Callable[[_Undo], None]) -> None:
        self._lock = lock
        self._journal = journal
        self._series: dict[str, list[HistorySample]] = {}
        self._ids = itertools.count(1)

    def last_sample_time(self, node_id: str) -> datetime | None:
        with self._lock:
            series = self._series.get(node_id)
            return series[-1].timestamp if series else None

    def append(self, sample: HistorySample) -> HistorySample:
        with self._lock:
            stored = sample.model_copy(update={"id": next(self._ids)})
            series = self._series.setdefault(stored.node_id, [])
            insort(series, stored, key=_sample_time)
            self._journal(lambda: series.remove(stored))
        return stored

    def range(self, node_id: str, since: datetime) -> list[HistorySample]:
        with self._lock:
            series = self._series.get(node_id, [])
            start = bisect_left(series, since, key=_sample_time)
            return series[start:]

    def prune(self, older_than: datetime) -> int:
        deleted = 0
        with self._lock:
            for node_id in list(self._series):
                series = self._series[node_id]
                end = bisect_left(series, older_than, key=_sample_time)
                if not end:
                    continue
                removed = series[:end]
                del series[:end]
                deleted += end
                self._journal(lambda series=series, removed=removed: _restore_prefix(series, removed))
        return deleted


class MemoryStore:
    """Node and history stores sharing one lock and one undo journal."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._pending: list[_Undo] | None = None
        self._nodes = MemoryNodeStore(self._lock, self._record_undo)
        self._history = MemoryHistoryStore(self._lock, self._record_undo)

    @property
    def nodes(self) -> MemoryNodeStore:
        return self._nodes

    @property
    def history(self) -> MemoryHistoryStore:
        return self._history

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._pending is not None:
                # Nested: the outer transaction owns the journal.
                yield
                return
            self._pending = []
            try:
                yield
            except BaseException:
                for undo in reversed(self._pending):
                    undo()
                raise
            finally:
                self._pending = None

    def close(self) -> None:
        return None

    def _record_undo(self, undo: _Undo) -> None:
        if self._pending is not None:
            self._pending.append(undo)
