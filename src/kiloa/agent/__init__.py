"""Reporting agent.

Collects host metrics with psutil and posts them to the dashboard through
:class:`kiloa.client.ReportClient` on a fixed interval.
"""

from kiloa.agent.collector import Counters, SystemCollector, steal_percent, throughput_mb_s
from kiloa.agent.runner import lookup_network_identity, resolve_node_id, run_agent

__all__ = [
    "Counters",
    "SystemCollector",
    "lookup_network_identity",
    "resolve_node_id",
    "run_agent",
    "steal_percent",
    "throughput_mb_s",
]
