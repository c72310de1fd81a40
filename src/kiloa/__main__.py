"""Run the kiloa dashboard service: ``python -m kiloa``."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

from aiohttp import web

from kiloa.config import KiloaConfig
from kiloa.exceptions import KiloaConfigError
from kiloa.server import create_app
from kiloa.state.sql import SqlStore

_logger = logging.getLogger("kiloa")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kiloa",
        description="Collect agent telemetry reports and serve node state and history.",
    )
    parser.add_argument("--host", help="Bind address (default: KILOA_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default: KILOA_PORT or 8080)")
    parser.add_argument("--db-url", dest="database_url", help="SQLAlchemy database URL (default: KILOA_DB_URL)")
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

    overrides = {
        key: value
        for key, value in {"host": args.host, "port": args.port, "database_url": args.database_url}.items()
        if value is not None
    }
    try:
        config = KiloaConfig.from_env(**overrides)
    except KiloaConfigError as exc:
        parser.error(str(exc))

    store = SqlStore.from_url(config.database_url, prune_batch_size=config.prune_batch_size)
    try:
        store.create_schema()
        app = create_app(config, store)
        _logger.info("Kiloa dashboard running on http://%s:%d", config.host, config.port)
        web.run_app(app, host=config.host, port=config.port, print=None)
    finally:
        store.close()


if __name__ == "__main__":
    main()
