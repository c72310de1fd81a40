"""Service configuration for kiloa."""

from __future__ import annotations

import dataclasses
import os
from datetime import timedelta
from typing import Any

from kiloa._constants import (
    DEFAULT_HISTORY_THROTTLE_S,
    DEFAULT_ONLINE_WINDOW_S,
    DEFAULT_PRUNE_PROBABILITY,
    DEFAULT_REPORT_INTERVAL_S,
    DEFAULT_RETENTION_DAYS,
    UNKNOWN_LABEL,
)
from kiloa.exceptions import KiloaConfigError

_ENV_STR_MAP = {
    "KILOA_TOKEN": "token",
    "KILOA_DB_URL": "database_url",
    "KILOA_HOST": "host",
    "KILOA_SERVER_URL": "server_url",
    "KILOA_NODE_ID": "node_id",
    "KILOA_LOCATION": "location",
    "KILOA_ISP": "isp",
}

_ENV_INT_MAP = {
    "KILOA_PORT": "port",
    "KILOA_PRUNE_BATCH_SIZE": "prune_batch_size",
}

_ENV_FLOAT_MAP = {
    "KILOA_HISTORY_THROTTLE": "history_throttle",
    "KILOA_RETENTION_DAYS": "retention_days",
    "KILOA_PRUNE_PROBABILITY": "prune_probability",
    "KILOA_PRUNE_INTERVAL": "prune_interval",
    "KILOA_ONLINE_WINDOW": "online_window",
    "KILOA_REQUEST_TIMEOUT": "request_timeout",
    "KILOA_REPORT_INTERVAL": "report_interval",
}


@dataclasses.dataclass(frozen=True)
class KiloaConfig:
    """Dashboard and agent configuration.

    Parameters
    ----------
    token : str
        Static shared secret agents send in the ``Authorization`` header.
    database_url : str
        SQLAlchemy URL of the node/history database.
    host : str
        Interface the HTTP service binds to.
    port : int
        Port the HTTP service listens on.
    server_url : str
        Dashboard base URL used by :class:`kiloa.client.ReportClient`.
    history_throttle : float
        Minimum spacing in seconds between two history samples of one node.
    retention_days : float
        History samples older than this are eligible for pruning.
    prune_probability : float
        Chance that an accepted history write triggers a retention sweep.
    prune_interval : float
        When greater than zero, sweeps run on a fixed timer (seconds) instead
        of being triggered by writes.
    prune_batch_size : int
        Maximum rows deleted per sweep transaction.
    online_window : float
        A node is ``online`` while its last report is younger than this many
        seconds.
    request_timeout : float
        Client-side timeout in seconds for posting a report.
    node_id : str
        Identifier the agent reports under; empty means the host name.
    location : str
        Location label the agent attaches to its reports.
    isp : str
        ISP label the agent attaches; ``Unknown`` triggers a lookup at start.
    report_interval : float
        Seconds between two agent reports.
    """

    token: str = "secret"
    database_url: str = "sqlite:///kiloa.db"
    host: str = "0.0.0.0"
    port: int = 8080
    server_url: str = "http://localhost:8080"
    history_throttle: float = DEFAULT_HISTORY_THROTTLE_S
    retention_days: float = DEFAULT_RETENTION_DAYS
    prune_probability: float = DEFAULT_PRUNE_PROBABILITY
    prune_interval: float = 0.0
    prune_batch_size: int = 1000
    online_window: float = DEFAULT_ONLINE_WINDOW_S
    request_timeout: float = 5.0
    node_id: str = ""
    location: str = UNKNOWN_LABEL
    isp: str = UNKNOWN_LABEL
    report_interval: float = DEFAULT_REPORT_INTERVAL_S

    def __post_init__(self) -> None:
        if not self.token:
            raise KiloaConfigError("token must be non-empty")
        if not 0.0 <= self.prune_probability <= 1.0:
            raise KiloaConfigError(f"prune_probability must be within [0, 1], got {self.prune_probability}")
        if self.history_throttle < 0:
            raise KiloaConfigError(f"history_throttle must not be negative, got {self.history_throttle}")
        if self.retention_days <= 0:
            raise KiloaConfigError(f"retention_days must be positive, got {self.retention_days}")
        if self.prune_interval < 0:
            raise KiloaConfigError(f"prune_interval must not be negative, got {self.prune_interval}")
        if self.prune_batch_size <= 0:
            raise KiloaConfigError(f"prune_batch_size must be positive, got {self.prune_batch_size}")
        if self.online_window <= 0:
            raise KiloaConfigError(f"online_window must be positive, got {self.online_window}")
        if self.report_interval <= 0:
            raise KiloaConfigError(f"report_interval must be positive, got {self.report_interval}")

    @property
    def throttle(self) -> timedelta:
        return timedelta(seconds=self.history_throttle)

    @property
    def retention(self) -> timedelta:
        return timedelta(days=self.retention_days)

    @property
    def online_threshold(self) -> timedelta:
        return timedelta(seconds=self.online_window)

    @classmethod
    def from_env(cls, **overrides: Any) -> KiloaConfig:
        """Create configuration from ``KILOA_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        KiloaConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _parse_number(env_key, val, int)

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _parse_number(env_key, val, float)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)


def _parse_number(env_key: str, value: str, kind: type[int] | type[float]) -> int | float:
    try:
        return kind(value.strip())
    except ValueError as exc:
        raise KiloaConfigError(f"{env_key} must be a number, got {value!r}") from exc
