"""Read-side projections of stored node and history state."""

from kiloa.presentation.formatting import bytes_to_gb, format_bytes, format_uptime, usage_percent
from kiloa.presentation.projector import node_status, project_fleet, project_history, project_node, project_nodes

__all__ = [
    "bytes_to_gb",
    "format_bytes",
    "format_uptime",
    "node_status",
    "project_fleet",
    "project_history",
    "project_node",
    "project_nodes",
    "usage_percent",
]
