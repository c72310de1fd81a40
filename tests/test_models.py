from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from kiloa.exceptions import KiloaValidationError
from kiloa.models import HistoryRange, HistorySample, Node, NodePatch, NodeReport


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def test_report_requires_node_id() -> None:
    with pytest.raises(KiloaValidationError, match="node_id"):
        NodeReport.parse({"load_1": 1.0})


def test_report_rejects_blank_node_id() -> None:
    with pytest.raises(KiloaValidationError, match="node_id"):
        NodeReport.parse({"node_id": "   "})


def test_report_strips_node_id() -> None:
    assert NodeReport.parse({"node_id": " n1 "}).node_id == "n1"


def test_report_rejects_non_object_payload() -> None:
    with pytest.raises(KiloaValidationError, match="JSON object"):
        NodeReport.parse(["n1"])


def test_report_names_fields_with_wrong_types() -> None:
    with pytest.raises(KiloaValidationError, match="cores"):
        NodeReport.parse({"node_id": "n1", "cores": "many"})


def test_patch_keeps_explicit_zero_and_drops_absent_values() -> None:
    report = NodeReport.parse(
        {
            "node_id": "n1",
            "mem_used": 0,
            "location": "",
            "isp": None,
            "cpu_steal": float("nan"),
        }
    )

    assert report.patch().changes() == {"mem_used": 0}


def test_patch_ignores_unknown_agent_keys() -> None:
    report = NodeReport.parse({"node_id": "n1", "uptime": 12345, "load_1": 0.5})

    assert report.patch().changes() == {"load_1": 0.5}


def test_node_create_applies_defaults() -> None:
    node = Node.create("n1", NodePatch(cores=4), now=_dt())

    assert node.location == "Unknown"
    assert node.isp == "Unknown"
    assert node.cores == 4
    assert node.mem_total == 0
    assert node.load_15 == 0.0
    assert node.host_name is None
    assert node.boot_time is None
    assert node.created_at == node.updated_at == node.last_seen == _dt()


def test_node_merged_only_replaces_supplied_fields() -> None:
    node = Node.create("n1", NodePatch(location="Paris", mem_used=10, mem_total=100), now=_dt())
    later = _dt() + timedelta(seconds=30)

    merged = node.merged(NodePatch(mem_used=20, host_name="web-1"), now=later)

    assert merged.mem_used == 20
    assert merged.mem_total == 100
    assert merged.location == "Paris"
    assert merged.host_name == "web-1"
    assert merged.created_at == _dt()
    assert merged.updated_at == later
    assert merged.last_seen == later


def test_node_merged_never_moves_last_seen_backwards() -> None:
    node = Node.create("n1", NodePatch(), now=_dt())

    merged = node.merged(NodePatch(), now=_dt() - timedelta(seconds=5))

    assert merged.last_seen == _dt()


def test_history_range_parse_defaults_to_day() -> None:
    assert HistoryRange.parse(None) is HistoryRange.DAY
    assert HistoryRange.parse("") is HistoryRange.DAY
    assert HistoryRange.parse("7d") is HistoryRange.WEEK
    assert HistoryRange.parse("30D") is HistoryRange.MONTH


def test_history_range_parse_rejects_unknown_values() -> None:
    with pytest.raises(KiloaValidationError, match="24h, 7d, 30d"):
        HistoryRange.parse("1y")


def test_history_range_cutoff() -> None:
    assert HistoryRange.DAY.cutoff(_dt()) == _dt() - timedelta(hours=24)
    assert HistoryRange.WEEK.cutoff(_dt()) == _dt() - timedelta(days=7)
    assert HistoryRange.MONTH.cutoff(_dt()) == _dt() - timedelta(days=30)


def test_naive_timestamps_are_treated_as_utc() -> None:
    sample = HistorySample(node_id="n1", timestamp=datetime(2026, 1, 1, 12, 0))

    assert sample.timestamp == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
