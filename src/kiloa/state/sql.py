"""SQLAlchemy-backed store.

Works on any SQLAlchemy URL; SQLite is the default deployment. Node and
history writes issued inside :meth:`SqlStore.transaction` share one
connection and commit together. Pruning deletes in bounded batches, each in
its own short transaction, so a large sweep never holds the history table
for long.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from kiloa._constants import UNKNOWN_LABEL
from kiloa.exceptions import KiloaStorageError
from kiloa.models.history import HistorySample
from kiloa.models.node import Node
from kiloa.models.report import NodePatch

_logger = logging.getLogger(__name__)


class UtcDateTime(sa.TypeDecorator[datetime]):
    """Timezone-aware UTC datetimes on every backend.

    SQLite has no timezone support and hands back naive values; they are
    stored and read as UTC.
    """

    impl = sa.DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: sa.Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        value = value.astimezone(UTC)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: sa.Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


metadata = sa.MetaData()

nodes_table = sa.Table(
    "nodes",
    metadata,
    sa.Column("id", sa.String(255), primary_key=True),
    sa.Column("created_at", UtcDateTime, nullable=False),
    sa.Column("updated_at", UtcDateTime, nullable=False),
    sa.Column("last_seen", UtcDateTime, nullable=False),
    sa.Column("location", sa.String(255), nullable=False, server_default=UNKNOWN_LABEL),
    sa.Column("isp", sa.String(255), nullable=False, server_default=UNKNOWN_LABEL),
    sa.Column("cores", sa.Integer, nullable=False, server_default="0"),
    sa.Column("load_1", sa.Float, nullable=False, server_default="0"),
    sa.Column("load_5", sa.Float, nullable=False, server_default="0"),
    sa.Column("load_15", sa.Float, nullable=False, server_default="0"),
    sa.Column("mem_used", sa.BigInteger, nullable=False, server_default="0"),
    sa.Column("mem_total", sa.BigInteger, nullable=False, server_default="0"),
    sa.Column("disk_used", sa.BigInteger, nullable=False, server_default="0"),
    sa.Column("disk_total", sa.BigInteger, nullable=False, server_default="0"),
    sa.Column("cpu_steal", sa.Float, nullable=False, server_default="0"),
    sa.Column("net_up", sa.Float, nullable=False, server_default="0"),
    sa.Column("net_down", sa.Float, nullable=False, server_default="0"),
    # Static info
    sa.Column("host_name", sa.String(255)),
    sa.Column("os_distro", sa.String(255)),
    sa.Column("kernel_version", sa.String(255)),
    sa.Column("cpu_model", sa.String(255)),
    sa.Column("cpu_cores_detail", sa.String(255)),
    sa.Column("boot_time", sa.BigInteger),
    sa.Column("public_ip", sa.String(64)),
    # Display metadata
    sa.Column("name", sa.String(255)),
    sa.Column("position", sa.Integer, nullable=False, server_default="0"),
)

# node_id is a plain reference: samples are pruned independently of nodes.
history_table = sa.Table(
    "history",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("node_id", sa.String(255), nullable=False),
    sa.Column("timestamp", UtcDateTime, nullable=False),
    sa.Column("load_1", sa.Float, nullable=False, server_default="0"),
    sa.Column("mem_percent", sa.Float, nullable=False, server_default="0"),
    sa.Column("disk_percent", sa.Float, nullable=False, server_default="0"),
    sa.Column("net_in", sa.Float, nullable=False, server_default="0"),
    sa.Column("net_out", sa.Float, nullable=False, server_default="0"),
    sa.Index("ix_history_node_id_timestamp", "node_id", "timestamp"),
    sa.Index("ix_history_timestamp", "timestamp"),
)


def _row_to_node(row: sa.Row[Any]) -> Node:
    return Node.model_validate(dict(row._mapping))


def _row_to_sample(row: sa.Row[Any]) -> HistorySample:
    return HistorySample.model_validate(dict(row._mapping))


class SqlNodeStore:
    def __init__(self, store: SqlStore) -> None:
        self._store = store

    def get(self, node_id: str) -> Node | None:
        stmt = sa.select(nodes_table).where(nodes_table.c.id == node_id)
        with self._store.connect("get node") as conn:
            row = conn.execute(stmt).first()
        return _row_to_node(row) if row is not None else None

    def upsert(self, node_id: str, patch: NodePatch, *, now: datetime) -> Node:
        select_stmt = sa.select(nodes_table).where(nodes_table.c.id == node_id)
        with self._store.connect("upsert node") as conn:
            row = conn.execute(select_stmt).first()
            if row is None:
                node = Node.create(node_id, patch, now=now)
                conn.execute(nodes_table.insert().values(**node.model_dump()))
            else:
                node = _row_to_node(row).merged(patch, now=now)
                conn.execute(
                    nodes_table.update()
                    .where(nodes_table.c.id == node_id)
                    .values(**node.model_dump(exclude={"id", "created_at"}))
                )
        return node

    def list_all(self) -> list[Node]:
        stmt = sa.select(nodes_table).order_by(nodes_table.c.last_seen.desc(), nodes_table.c.id.desc())
        with self._store.connect("list nodes") as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_node(row) for row in rows]


class SqlHistoryStore:
    def __init__(self, store: SqlStore, *, prune_batch_size: int) -> None:
        self._store = store
        self._prune_batch_size = prune_batch_size

    def last_sample_time(self, node_id: str) -> datetime | None:
        stmt = (
            sa.select(history_table.c.timestamp)
            .where(history_table.c.node_id == node_id)
            .order_by(history_table.c.timestamp.desc())
            .limit(1)
        )
        with self._store.connect("read last sample") as conn:
            return conn.execute(stmt).scalar_one_or_none()

    def append(self, sample: HistorySample) -> HistorySample:
        values = sample.model_dump(exclude={"id"})
        with self._store.connect("append sample") as conn:
            result = conn.execute(history_table.insert().values(**values))
            (sample_id,) = result.inserted_primary_key
        return sample.model_copy(update={"id": sample_id})

    def range(self, node_id: str, since: datetime) -> list[HistorySample]:
        stmt = (
            sa.select(history_table)
            .where(history_table.c.node_id == node_id, history_table.c.timestamp >= since)
            .order_by(history_table.c.timestamp.asc(), history_table.c.id.asc())
        )
        with self._store.connect("read history range") as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_sample(row) for row in rows]

    def prune(self, older_than: datetime) -> int:
        select_batch = (
            sa.select(history_table.c.id)
            .where(history_table.c.timestamp < older_than)
            .order_by(history_table.c.id)
            .limit(self._prune_batch_size)
        )
        deleted = 0
        while True:
            with self._store.connect("prune history") as conn:
                ids = list(conn.execute(select_batch).scalars())
                if ids:
                    conn.execute(history_table.delete().where(history_table.c.id.in_(ids)))
            deleted += len(ids)
            if len(ids) < self._prune_batch_size:
                return deleted


class SqlStore:
    """Node and history stores over one SQLAlchemy engine."""

    def __init__(self, engine: Engine, *, prune_batch_size: int = 1000) -> None:
        self._engine = engine
        self._local = threading.local()
        # A StaticPool hands every thread the same DBAPI connection, so the
        # whole store is serialized on it.
        self._exclusive: contextlib.AbstractContextManager[Any] = (
            threading.RLock() if isinstance(engine.pool, StaticPool) else contextlib.nullcontext()
        )
        self._nodes = SqlNodeStore(self)
        self._history = SqlHistoryStore(self, prune_batch_size=prune_batch_size)

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> SqlStore:
        """Create a store from a SQLAlchemy URL.

        SQLite connections are shared across the worker threads that run
        ingestion. In-memory SQLite lives on a single static connection, which
        the store then lends to one thread at a time.
        """
        engine_kwargs: dict[str, Any] = {}
        parsed = make_url(url)
        if parsed.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if parsed.database in (None, "", ":memory:"):
                engine_kwargs["poolclass"] = StaticPool
        return cls(sa.create_engine(parsed, **engine_kwargs), **kwargs)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def nodes(self) -> SqlNodeStore:
        return self._nodes

    @property
    def history(self) -> SqlHistoryStore:
        return self._history

    def create_schema(self) -> None:
        """Create the ``nodes`` and ``history`` tables if they do not exist."""
        try:
            with self._exclusive:
                metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise KiloaStorageError(f"Schema creation failed: {exc}", operation="create schema") from exc

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            yield
            return
        with self.connect("transaction") as conn:
            self._local.conn = conn
            try:
                yield
            finally:
                self._local.conn = None

    @contextlib.contextmanager
    def connect(self, operation: str) -> Iterator[Connection]:
        """Yield the connection of the current transaction, or a fresh one that commits on exit."""
        active: Connection | None = getattr(self._local, "conn", None)
        try:
            if active is not None:
                yield active
            else:
                with self._exclusive, self._engine.begin() as conn:
                    yield conn
        except SQLAlchemyError as exc:
            _logger.debug("Storage failure during %s", operation, exc_info=True)
            raise KiloaStorageError(f"{operation} failed: {exc}", operation=operation) from exc

    def close(self) -> None:
        self._engine.dispose()
