"""Reporting agent: collect host metrics on an interval and post them.

Run with ``kiloa-agent`` or ``python -m kiloa.agent``::

    kiloa-agent --server http://dashboard:8080 --token s3cr3t --location Tokyo
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import socket
from collections.abc import Sequence
from typing import Any

import aiohttp
import psutil

from kiloa._constants import ISP_LOOKUP_URL, UNKNOWN_LABEL
from kiloa.agent.collector import SystemCollector
from kiloa.client import ReportClient
from kiloa.config import KiloaConfig
from kiloa.exceptions import KiloaConfigError, KiloaTransportError

_logger = logging.getLogger(__name__)


def resolve_node_id(configured: str) -> str:
    """The configured node id, or this host's name when none is set."""
    return configured.strip() or socket.gethostname()


async def lookup_network_identity(
    session: aiohttp.ClientSession,
    *,
    url: str = ISP_LOOKUP_URL,
) -> tuple[str, str | None]:
    """Return ``(isp, public_ip)`` from a public IP-info service.

    Any failure yields ``("Unknown", None)``; the agent reports regardless.
    """
    try:
        async with session.get(url) as resp:
            if resp.status != 200:
                _logger.warning("ISP lookup at %s returned HTTP %d", url, resp.status)
                return UNKNOWN_LABEL, None
            data: Any = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        _logger.warning("ISP lookup at %s failed: %s", url, exc)
        return UNKNOWN_LABEL, None

    if not isinstance(data, dict):
        return UNKNOWN_LABEL, None
    isp = data.get("isp") or UNKNOWN_LABEL
    public_ip = data.get("query") or None
    return str(isp), str(public_ip) if public_ip else None


async def _default_collector(
    config: KiloaConfig,
    session: aiohttp.ClientSession,
    isp_lookup_url: str,
) -> SystemCollector:
    isp, public_ip = config.isp, None
    if isp == UNKNOWN_LABEL:
        _logger.info("Detecting ISP...")
        isp, public_ip = await lookup_network_identity(session, url=isp_lookup_url)
    return SystemCollector(resolve_node_id(config.node_id), location=config.location, isp=isp, public_ip=public_ip)


async def run_agent(
    config: KiloaConfig,
    *,
    collector: SystemCollector | None = None,
    session: aiohttp.ClientSession | None = None,
    max_ticks: int | None = None,
    isp_lookup_url: str = ISP_LOOKUP_URL,
) -> int:
    """Report every ``config.report_interval`` seconds.

    Runs until cancelled, or for *max_ticks* ticks when given. Collection and
    delivery failures are logged and the next tick proceeds. Returns the number
    of reports the dashboard accepted.
    """
    owns_session = session is None
    if session is None:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=config.request_timeout))
    try:
        if collector is None:
            collector = await _default_collector(config, session, isp_lookup_url)

        accepted = 0
        ticks = 0
        async with ReportClient(config, session=session) as client:
            _logger.info("Posting to %s every %.1f seconds", config.server_url, config.report_interval)
            while max_ticks is None or ticks < max_ticks:
                await asyncio.sleep(config.report_interval)
                ticks += 1
                try:
                    report = await asyncio.to_thread(collector.collect)
                except (psutil.Error, OSError) as exc:
                    _logger.warning("Collecting host metrics failed: %s", exc)
                    continue
                try:
                    await client.send(report)
                except KiloaTransportError as exc:
                    _logger.warning("Report for %s not delivered: %s", report.node_id, exc)
                    continue
                accepted += 1
        return accepted
    finally:
        if owns_session:
            await session.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kiloa-agent",
        description="Collect host metrics and post them to a kiloa dashboard.",
    )
    parser.add_argument("--server", dest="server_url", help="Dashboard URL (default: KILOA_SERVER_URL)")
    parser.add_argument("--token", help="Shared auth token (default: KILOA_TOKEN)")
    parser.add_argument("--id", dest="node_id", help="Node id (default: KILOA_NODE_ID or the host name)")
    parser.add_argument("--location", help="Location label (default: KILOA_LOCATION or Unknown)")
    parser.add_argument("--isp", help="ISP label; Unknown triggers a lookup (default: KILOA_ISP)")
    parser.add_argument(
        "--interval",
        dest="report_interval",
        type=float,
        help="Seconds between reports (default: KILOA_REPORT_INTERVAL or 2)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    fields = ("server_url", "token", "node_id", "location", "isp", "report_interval")
    overrides = {name: getattr(args, name) for name in fields if getattr(args, name) is not None}
    try:
        config = KiloaConfig.from_env(**overrides)
    except KiloaConfigError as exc:
        parser.error(str(exc))

    try:
        asyncio.run(run_agent(config))
    except KeyboardInterrupt:
        _logger.info("Agent stopped")


if __name__ == "__main__":
    main()
