"""Pydantic models for kiloa reports, stored rows and read views."""

from kiloa.models.history import HistoryRange, HistorySample
from kiloa.models.node import Node
from kiloa.models.report import NodePatch, NodeReport
from kiloa.models.views import ChartPoint, FleetStats, NodeStatus, NodeView

__all__ = [
    "ChartPoint",
    "FleetStats",
    "HistoryRange",
    "HistorySample",
    "Node",
    "NodePatch",
    "NodeReport",
    "NodeStatus",
    "NodeView",
]
