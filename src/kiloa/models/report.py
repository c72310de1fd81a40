"""Inbound report models.

An agent report is parsed into a :class:`NodeReport`. Its :meth:`NodeReport.patch`
is the partial update applied to the stored node: every field is optional and a
field that is absent (or ``null``) means "leave the stored value alone", which is
distinct from an explicit ``0``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field, ValidationError, field_validator

from kiloa.exceptions import KiloaValidationError
from kiloa.models._base import KiloaBaseModel


class NodePatch(KiloaBaseModel):
    """Fields of a node a report may carry. ``None`` means "not sent"."""

    location: str | None = None
    isp: str | None = None

    cores: int | None = None
    load_1: float | None = None
    load_5: float | None = None
    load_15: float | None = None
    mem_used: int | None = Field(default=None, description="Bytes")
    mem_total: int | None = Field(default=None, description="Bytes")
    disk_used: int | None = Field(default=None, description="Bytes")
    disk_total: int | None = Field(default=None, description="Bytes")
    cpu_steal: float | None = Field(default=None, description="Percent of CPU time stolen by the hypervisor")
    net_up: float | None = Field(default=None, description="Outbound rate (MB/s)")
    net_down: float | None = Field(default=None, description="Inbound rate (MB/s)")

    host_name: str | None = None
    os_distro: str | None = None
    kernel_version: str | None = None
    cpu_model: str | None = None
    cpu_cores_detail: str | None = None
    boot_time: int | None = Field(default=None, description="Epoch seconds")
    public_ip: str | None = None

    name: str | None = Field(default=None, description="Operator-assigned display name")
    position: int | None = Field(default=None, description="Operator-assigned sort position")

    def changes(self) -> dict[str, Any]:
        """Return only the fields this patch actually sets."""
        return self.model_dump(exclude_none=True)


class NodeReport(NodePatch):
    """One telemetry payload as posted by an agent."""

    node_id: str = Field(..., description="Externally assigned node identifier")

    @field_validator("node_id")
    @classmethod
    def _normalize_node_id(cls, value: str) -> str:
        node_id = value.strip()
        if not node_id:
            raise ValueError("node_id must be non-empty")
        return node_id

    @classmethod
    def parse(cls, payload: Any) -> NodeReport:
        """Validate a decoded JSON payload.

        Raises
        ------
        KiloaValidationError
            If the payload is not an object, lacks ``node_id`` or carries
            values of the wrong type.
        """
        if isinstance(payload, NodeReport):
            return payload
        if not isinstance(payload, Mapping):
            raise KiloaValidationError(f"report must be a JSON object, got {type(payload).__name__}")
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
            if "node_id" in fields:
                raise KiloaValidationError("Missing or invalid node_id") from exc
            raise KiloaValidationError(f"Invalid report fields: {', '.join(fields)}") from exc

    def patch(self) -> NodePatch:
        """The node fields of this report, without the identifier."""
        return NodePatch.model_validate(self.model_dump(exclude={"node_id"}, exclude_none=True))
