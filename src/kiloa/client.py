"""Async client agents use to post reports to the dashboard."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from kiloa._constants import USER_AGENT
from kiloa._redact import redact_for_log
from kiloa.config import KiloaConfig
from kiloa.exceptions import KiloaTransportError
from kiloa.models.report import NodeReport

_logger = logging.getLogger(__name__)

REPORT_ENDPOINT = "/api/report"


class ReportClient:
    """Posts :class:`~kiloa.models.report.NodeReport` payloads.

    Usage::

        async with ReportClient(config) as client:
            await client.send({"node_id": "n1", "load_1": 0.4})
    """

    def __init__(
        self,
        config: KiloaConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session

    async def __aenter__(self) -> ReportClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            )
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._http_session is not None and not self._external_session:
            await self._http_session.close()
            self._http_session = None

    async def send(self, report: NodeReport | Mapping[str, Any]) -> dict[str, Any]:
        """Validate *report* locally and post it.

        Raises
        ------
        KiloaValidationError
            If the report has no ``node_id``; nothing is sent.
        KiloaTransportError
            On network failure, a non-200 status or a non-JSON reply.
        """
        if self._http_session is None:
            raise RuntimeError("ReportClient must be used as an async context manager")

        parsed = NodeReport.parse(report)
        body = parsed.model_dump(exclude_none=True)
        url = f"{self._config.server_url.rstrip('/')}{REPORT_ENDPOINT}"
        headers = {
            "authorization": self._config.token,
            "user-agent": USER_AGENT,
        }

        _logger.debug("POST %s %s", url, redact_for_log(body))

        try:
            async with self._http_session.post(url, json=body, headers=headers) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise KiloaTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
                try:
                    result: dict[str, Any] = await resp.json()
                except (aiohttp.ContentTypeError, ValueError) as exc:
                    raise KiloaTransportError(f"Invalid JSON from {url}", status_code=resp.status, url=url) from exc
        except KiloaTransportError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise KiloaTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        return result
