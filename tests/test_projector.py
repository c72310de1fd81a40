from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from kiloa.models.history import HistorySample
from kiloa.models.node import Node
from kiloa.presentation.formatting import bytes_to_gb, format_bytes, format_uptime, usage_percent
from kiloa.presentation.projector import node_status, project_fleet, project_history, project_node


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _node(node_id: str = "n1", *, seen_ago: float = 0.0, **fields) -> Node:
    seen = _dt() - timedelta(seconds=seen_ago)
    return Node(id=node_id, created_at=seen, updated_at=seen, last_seen=seen, **fields)


@pytest.mark.parametrize(
    ("num_bytes", "expected"),
    [
        (0, "0 B"),
        (512, "512 B"),
        (1023, "1023 B"),
        (1024, "1.0 K"),
        (1536, "1.5 K"),
        (5 * 1024**2, "5.0 M"),
        (1 << 30, "1.0 G"),
        (2 * 1024**4, "2.0 T"),
        (3 * 1024**5, "3072.0 T"),
    ],
)
def test_format_bytes(num_bytes: int, expected: str) -> None:
    assert format_bytes(num_bytes) == expected


def test_bytes_to_gb_rounds_to_two_places() -> None:
    assert bytes_to_gb(5_000_000_000) == 4.66
    assert bytes_to_gb(0) == 0.0


def test_usage_percent_guards_zero_total() -> None:
    assert usage_percent(1, 3) == 33.3
    assert usage_percent(5, 0) == 0.0


def test_node_status_uses_strict_window() -> None:
    now = _dt()
    assert node_status(now - timedelta(seconds=90), now) == "online"
    assert node_status(now - timedelta(seconds=120), now) == "offline"
    assert node_status(now - timedelta(seconds=121), now) == "offline"
    assert node_status(now - timedelta(seconds=121), now, online_window=timedelta(minutes=5)) == "online"


def test_format_uptime() -> None:
    now = _dt()
    boot = int(now.timestamp()) - (2 * 86_400 + 3 * 3_600 + 600)

    assert format_uptime(boot, now) == "2 days, 3 hours"
    assert format_uptime(None, now) == "Unknown"
    assert format_uptime(0, now) == "Unknown"
    assert format_uptime(int(now.timestamp()) + 3_600, now) == "0 days, 0 hours"


def test_project_node_derives_presentation_fields() -> None:
    node = _node(
        seen_ago=30,
        cores=4,
        load_1=2.0,
        mem_used=5_000_000_000,
        mem_total=10_000_000_000,
        disk_used=1 << 30,
        disk_total=4 << 30,
        boot_time=int(_dt().timestamp()) - 86_400,
    )

    view = project_node(node, _dt())

    assert view.status == "online"
    assert view.mem_percent == 50.0
    assert view.mem_used_gb == 4.66
    assert view.mem_total_gb == 9.31
    assert view.disk_used_gb == 1.0
    assert view.disk_total_gb == 4.0
    assert view.disk_percent == 25.0
    assert view.load_percent == 50.0
    assert view.uptime == "1 days, 0 hours"
    assert view.id == "n1"
    assert view.location == "Unknown"


def test_project_node_zero_cores_and_totals() -> None:
    view = project_node(_node(load_1=3.0, mem_used=10), _dt())

    assert view.load_percent == 0.0
    assert view.mem_percent == 0.0
    assert view.disk_percent == 0.0
    assert view.uptime == "Unknown"


def test_node_view_serializes_dashboard_names() -> None:
    payload = project_node(_node(seen_ago=500, host_name="edge-1"), _dt()).model_dump(mode="json", by_alias=True)

    assert payload["status"] == "offline"
    assert payload["host_name"] == "edge-1"
    assert payload["mem_used"] == 0
    for key in ("memUsedGB", "memTotalGB", "memPercent", "diskUsedGB", "diskTotalGB", "diskPercent", "loadPercent"):
        assert key in payload
    assert "mem_used_gb" not in payload


def test_project_fleet_totals() -> None:
    nodes = [
        _node("a", seen_ago=10, mem_used=1 << 30, mem_total=2 << 30, disk_total=1 << 40, net_up=1.25, net_down=3.0),
        _node("b", seen_ago=600, mem_used=1 << 29, mem_total=2 << 30, disk_total=1 << 40, net_up=2.5, net_down=0.5),
    ]

    stats = project_fleet(nodes, _dt())

    assert stats.total_nodes == 2
    assert stats.online_nodes == 1
    assert stats.mem_used == "1.5 G"
    assert stats.mem_total == "4.0 G"
    assert stats.disk_used == "0 B"
    assert stats.disk_total == "2.0 T"
    assert stats.net_up == 3.75
    assert stats.net_down == 3.5
    assert stats.model_dump(by_alias=True)["onlineNodes"] == 1


def test_project_fleet_of_no_nodes() -> None:
    stats = project_fleet([], _dt())

    assert stats.total_nodes == 0
    assert stats.online_nodes == 0
    assert stats.mem_used == "0 B"
    assert stats.net_up == 0.0


def test_project_history_keeps_order_and_chart_fields() -> None:
    samples = [
        HistorySample(id=1, node_id="n1", timestamp=_dt(), load_1=0.5, mem_percent=10.0, net_in=2.0),
        HistorySample(id=2, node_id="n1", timestamp=_dt() + timedelta(minutes=1), disk_percent=40.0, net_out=1.0),
    ]

    points = project_history(samples)

    assert [point.timestamp for point in points] == [_dt(), _dt() + timedelta(minutes=1)]
    assert points[0].load_1 == 0.5
    assert points[0].net_in == 2.0
    assert points[1].disk_percent == 40.0
    assert set(points[1].model_dump()) == {"timestamp", "load_1", "mem_percent", "disk_percent", "net_in", "net_out"}
