"""kiloa - fleet telemetry ingestion with bounded history retention."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("kiloa")
except PackageNotFoundError:
    __version__ = "0+local"
from kiloa.client import ReportClient
from kiloa.config import KiloaConfig
from kiloa.exceptions import (
    KiloaAuthError,
    KiloaConfigError,
    KiloaError,
    KiloaStorageError,
    KiloaTransportError,
    KiloaValidationError,
)
from kiloa.ingestion.engine import IngestionEngine, IngestResult
from kiloa.models import (
    ChartPoint,
    FleetStats,
    HistoryRange,
    HistorySample,
    Node,
    NodePatch,
    NodeReport,
    NodeView,
)
from kiloa.state.maintenance import IntervalMaintenance, NeverMaintenance, ProbabilisticMaintenance
from kiloa.state.memory import MemoryStore
from kiloa.state.sql import SqlStore

__all__ = [
    "__version__",
    "ChartPoint",
    "FleetStats",
    "HistoryRange",
    "HistorySample",
    "IngestResult",
    "IngestionEngine",
    "IntervalMaintenance",
    "KiloaAuthError",
    "KiloaConfig",
    "KiloaConfigError",
    "KiloaError",
    "KiloaStorageError",
    "KiloaTransportError",
    "KiloaValidationError",
    "MemoryStore",
    "NeverMaintenance",
    "Node",
    "NodePatch",
    "NodeReport",
    "NodeView",
    "ProbabilisticMaintenance",
    "ReportClient",
    "SqlStore",
]
