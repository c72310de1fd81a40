"""Read-side view models.

These carry derived values computed at read time; they are never persisted.
Derived node fields serialize with the camelCase names the dashboard
frontend polls for (``memUsedGB``, ``loadPercent``...), stored fields keep
their column names.
"""

from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from kiloa.models._base import KiloaBaseModel, UtcDatetime
from kiloa.models.node import Node

NodeStatus = Literal["online", "offline"]


class NodeView(Node):
    """A stored node plus its derived presentation fields."""

    status: NodeStatus
    mem_used_gb: float = Field(0.0, alias="memUsedGB")
    mem_total_gb: float = Field(0.0, alias="memTotalGB")
    mem_percent: float = Field(0.0, alias="memPercent")
    disk_used_gb: float = Field(0.0, alias="diskUsedGB")
    disk_total_gb: float = Field(0.0, alias="diskTotalGB")
    disk_percent: float = Field(0.0, alias="diskPercent")
    load_percent: float = Field(0.0, alias="loadPercent")
    uptime: str = "Unknown"


class FleetStats(KiloaBaseModel):
    """Aggregate numbers shown above the node list."""

    model_config = ConfigDict(alias_generator=to_camel)

    total_nodes: int = 0
    online_nodes: int = 0
    mem_used: str = "0 B"
    mem_total: str = "0 B"
    disk_used: str = "0 B"
    disk_total: str = "0 B"
    net_up: float = 0.0
    net_down: float = 0.0


class ChartPoint(KiloaBaseModel):
    """One history sample as served to the chart endpoint."""

    timestamp: UtcDatetime
    load_1: float = 0.0
    mem_percent: float = 0.0
    disk_percent: float = 0.0
    net_in: float = 0.0
    net_out: float = 0.0
