"""Host metric collection for the reporting agent.

Gauges (load, memory, disk) are read as-is on every tick. CPU steal and
network throughput are rates, derived from the cumulative counters of the
previous tick; the first tick after start reports them as 0.
"""

from __future__ import annotations

import platform
import socket
import time
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from kiloa.models.report import NodeReport

_BYTES_PER_MB = 1024 * 1024

# Fields summed into total CPU time; ones missing on a platform count as 0.
_CPU_TIME_FIELDS: tuple[str, ...] = ("user", "system", "idle", "nice", "iowait", "irq", "softirq", "steal")


@dataclass(frozen=True, slots=True)
class Counters:
    """Cumulative host counters at one instant."""

    taken_at: float
    bytes_sent: int = 0
    bytes_recv: int = 0
    cpu_total: float = 0.0
    cpu_steal: float = 0.0


def throughput_mb_s(previous: int, current: int, elapsed: float) -> float:
    """Megabytes per second between two byte counters.

    Returns 0 when no time has passed or the counter went backwards
    (interface reset or wrap).
    """
    if elapsed <= 0 or current < previous:
        return 0.0
    return (current - previous) / _BYTES_PER_MB / elapsed


def steal_percent(previous: Counters, current: Counters) -> float:
    """Share of CPU time stolen by the hypervisor between two snapshots."""
    total = current.cpu_total - previous.cpu_total
    if total <= 0:
        return 0.0
    return max(0.0, current.cpu_steal - previous.cpu_steal) / total * 100


def read_counters(clock: Callable[[], float] = time.monotonic) -> Counters:
    net = psutil.net_io_counters(pernic=False)
    cpu = psutil.cpu_times(percpu=False)
    return Counters(
        taken_at=clock(),
        bytes_sent=net.bytes_sent if net is not None else 0,
        bytes_recv=net.bytes_recv if net is not None else 0,
        cpu_total=sum(getattr(cpu, name, 0.0) for name in _CPU_TIME_FIELDS),
        cpu_steal=getattr(cpu, "steal", 0.0),
    )


class SystemCollector:
    """Builds one :class:`~kiloa.models.report.NodeReport` per call.

    Parameters
    ----------
    node_id
        Identifier to report under.
    location, isp
        Labels attached to every report.
    public_ip
        Address attached to every report when known.
    disk_path
        Mount point whose usage is reported.
    clock
        Monotonic seconds; injectable for tests.
    """

    def __init__(
        self,
        node_id: str,
        *,
        location: str,
        isp: str,
        public_ip: str | None = None,
        disk_path: str = "/",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._node_id = node_id
        self._location = location
        self._isp = isp
        self._public_ip = public_ip
        self._disk_path = disk_path
        self._clock = clock
        self._previous: Counters | None = None

    def collect(self) -> NodeReport:
        load_1, load_5, load_15 = psutil.getloadavg()
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage(self._disk_path)
        current = read_counters(self._clock)

        net_up = net_down = cpu_steal = 0.0
        if self._previous is not None:
            elapsed = current.taken_at - self._previous.taken_at
            net_up = throughput_mb_s(self._previous.bytes_sent, current.bytes_sent, elapsed)
            net_down = throughput_mb_s(self._previous.bytes_recv, current.bytes_recv, elapsed)
            cpu_steal = steal_percent(self._previous, current)
        self._previous = current

        return NodeReport(
            node_id=self._node_id,
            location=self._location,
            isp=self._isp,
            cores=psutil.cpu_count(logical=True) or 0,
            load_1=load_1,
            load_5=load_5,
            load_15=load_15,
            mem_used=memory.used,
            mem_total=memory.total,
            disk_used=disk.used,
            disk_total=disk.total,
            cpu_steal=cpu_steal,
            net_up=net_up,
            net_down=net_down,
            host_name=socket.gethostname(),
            kernel_version=platform.release(),
            cpu_model=platform.processor(),
            boot_time=int(psutil.boot_time()),
            public_ip=self._public_ip,
        )
