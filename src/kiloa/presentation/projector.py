"""Stored rows -> read views.

Everything here is a pure function of its inputs and "now"; nothing is
written back.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from kiloa._constants import DEFAULT_ONLINE_WINDOW_S
from kiloa.models.history import HistorySample
from kiloa.models.node import Node
from kiloa.models.views import ChartPoint, FleetStats, NodeStatus, NodeView
from kiloa.presentation.formatting import bytes_to_gb, format_bytes, format_uptime, usage_percent

DEFAULT_ONLINE_WINDOW = timedelta(seconds=DEFAULT_ONLINE_WINDOW_S)


def node_status(last_seen: datetime, now: datetime, *, online_window: timedelta = DEFAULT_ONLINE_WINDOW) -> NodeStatus:
    return "online" if now - last_seen < online_window else "offline"


def project_node(node: Node, now: datetime, *, online_window: timedelta = DEFAULT_ONLINE_WINDOW) -> NodeView:
    return NodeView(
        **node.model_dump(),
        status=node_status(node.last_seen, now, online_window=online_window),
        mem_used_gb=bytes_to_gb(node.mem_used),
        mem_total_gb=bytes_to_gb(node.mem_total),
        mem_percent=usage_percent(node.mem_used, node.mem_total),
        disk_used_gb=bytes_to_gb(node.disk_used),
        disk_total_gb=bytes_to_gb(node.disk_total),
        disk_percent=usage_percent(node.disk_used, node.disk_total),
        load_percent=usage_percent(node.load_1, node.cores),
        uptime=format_uptime(node.boot_time, now),
    )


def project_nodes(
    nodes: Iterable[Node],
    now: datetime,
    *,
    online_window: timedelta = DEFAULT_ONLINE_WINDOW,
) -> list[NodeView]:
    return [project_node(node, now, online_window=online_window) for node in nodes]


def project_fleet(
    nodes: Sequence[Node],
    now: datetime,
    *,
    online_window: timedelta = DEFAULT_ONLINE_WINDOW,
) -> FleetStats:
    """Totals across *nodes*; sizes rendered with :func:`format_bytes`."""
    online = sum(1 for node in nodes if node_status(node.last_seen, now, online_window=online_window) == "online")
    return FleetStats(
        total_nodes=len(nodes),
        online_nodes=online,
        mem_used=format_bytes(sum(node.mem_used for node in nodes)),
        mem_total=format_bytes(sum(node.mem_total for node in nodes)),
        disk_used=format_bytes(sum(node.disk_used for node in nodes)),
        disk_total=format_bytes(sum(node.disk_total for node in nodes)),
        net_up=round(sum(node.net_up for node in nodes), 2),
        net_down=round(sum(node.net_down for node in nodes), 2),
    )


def project_history(samples: Iterable[HistorySample]) -> list[ChartPoint]:
    return [ChartPoint.model_validate(sample.model_dump(exclude={"id", "node_id"})) for sample in samples]
