"""Stored node row."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from kiloa._constants import UNKNOWN_LABEL
from kiloa.models._base import KiloaBaseModel, UtcDatetime
from kiloa.models.report import NodePatch


class Node(KiloaBaseModel):
    """Current state of one reporting agent.

    ``id`` and ``created_at`` are fixed when the row is created; every
    other field is replaced field by field as reports arrive.
    """

    id: str
    created_at: UtcDatetime
    updated_at: UtcDatetime
    last_seen: UtcDatetime

    location: str = UNKNOWN_LABEL
    isp: str = UNKNOWN_LABEL

    cores: int = 0
    load_1: float = 0.0
    load_5: float = 0.0
    load_15: float = 0.0
    mem_used: int = 0
    mem_total: int = 0
    disk_used: int = 0
    disk_total: int = 0
    cpu_steal: float = 0.0
    net_up: float = 0.0
    net_down: float = 0.0

    host_name: str | None = None
    os_distro: str | None = None
    kernel_version: str | None = None
    cpu_model: str | None = None
    cpu_cores_detail: str | None = None
    boot_time: int | None = Field(default=None, description="Epoch seconds")
    public_ip: str | None = None

    name: str | None = None
    position: int = 0

    @field_validator("id")
    @classmethod
    def _non_empty_id(cls, value: str) -> str:
        if not value:
            raise ValueError("id must be non-empty")
        return value

    @classmethod
    def create(cls, node_id: str, patch: NodePatch, *, now: datetime) -> Node:
        """First sighting of *node_id*: unset labels become ``Unknown``, unset numbers 0."""
        return cls(
            id=node_id,
            created_at=now,
            updated_at=now,
            last_seen=now,
            **patch.changes(),
        )

    def merged(self, patch: NodePatch, *, now: datetime) -> Node:
        """Apply *patch* with coalesce semantics: fields the patch omits keep their value."""
        update = patch.changes()
        update["updated_at"] = now
        update["last_seen"] = max(self.last_seen, now)
        return self.model_copy(update=update)
