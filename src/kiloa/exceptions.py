"""Custom exception hierarchy for kiloa."""

from __future__ import annotations


class KiloaError(Exception):
    """Base exception for all kiloa errors."""


class KiloaConfigError(KiloaError):
    """Invalid or missing configuration."""


class KiloaAuthError(KiloaError):
    """Missing or mismatching report credential.

    Raised before any state is touched; the transport layer maps it to
    ``401 Unauthorized``.
    """


class KiloaValidationError(KiloaError):
    """Report rejected before ingestion (e.g. missing ``node_id``)."""


class KiloaStorageError(KiloaError):
    """Underlying persistence failure on read or write.

    No retry is attempted inside kiloa. Re-sending the same report is safe
    because node upserts are idempotent.
    """

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class KiloaTransportError(KiloaError):
    """HTTP-level failure while posting a report (network, non-200)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)
