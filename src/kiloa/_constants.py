"""Internal constants shared across the library."""

from datetime import UTC, datetime

#: Label stored for ``location``/``isp`` when a new node does not send one.
UNKNOWN_LABEL = "Unknown"

#: Bytes per gigabyte as rendered on the dashboard (binary, 2**30).
BYTES_PER_GB = 1 << 30

#: Reference point used when a node has no history yet.
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

DEFAULT_HISTORY_THROTTLE_S: float = 60.0
DEFAULT_RETENTION_DAYS: float = 30.0
DEFAULT_PRUNE_PROBABILITY: float = 0.01
DEFAULT_ONLINE_WINDOW_S: float = 120.0
DEFAULT_REPORT_INTERVAL_S: float = 2.0

USER_AGENT = "kiloa-agent/1.0"

#: Public lookup the agent uses to label its ISP and public address.
ISP_LOOKUP_URL = "http://ip-api.com/json/"
