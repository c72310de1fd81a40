"""aiohttp service: agent report intake and JSON read endpoints.

Routes::

    POST /api/report                  agent report (token in Authorization)
    GET  /api/nodes                   all nodes with derived fields + fleet totals
    GET  /api/node/{node_id}          one node with derived fields and uptime
    GET  /api/node/{node_id}/history  chart samples, ?range=24h|7d|30d

Store calls are synchronous and run in worker threads so the event loop
never waits on the database.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import secrets
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime

from aiohttp import web

from kiloa.config import KiloaConfig
from kiloa.exceptions import KiloaAuthError, KiloaStorageError, KiloaValidationError
from kiloa.ingestion.engine import IngestionEngine
from kiloa.models.history import HistoryRange
from kiloa.presentation.projector import project_fleet, project_history, project_node, project_nodes
from kiloa.state.maintenance import run_retention_loop
from kiloa.state.store import Store

_logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", KiloaConfig)
ENGINE_KEY = web.AppKey("engine", IngestionEngine)

_BEARER_PREFIX = "Bearer "

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def check_token(header: str | None, expected: str) -> None:
    """Validate an ``Authorization`` header against the shared token.

    Agents send the bare token; ``Bearer <token>`` is accepted as well. Both
    forms must match exactly, including case and whitespace.

    Raises
    ------
    KiloaAuthError
        If the header is missing or does not match exactly.
    """
    if not header:
        raise KiloaAuthError("Missing Authorization header")
    presented = header.encode()
    if not (
        secrets.compare_digest(presented, expected.encode())
        or secrets.compare_digest(presented, f"{_BEARER_PREFIX}{expected}".encode())
    ):
        raise KiloaAuthError("Invalid token")


@web.middleware
async def error_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Map kiloa errors to HTTP responses: auth 401, validation 400, storage 500."""
    try:
        return await handler(request)
    except KiloaAuthError:
        _logger.debug("Rejected %s %s: bad credential", request.method, request.path)
        return web.json_response({"error": "Unauthorized"}, status=401)
    except KiloaValidationError as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except KiloaStorageError:
        _logger.exception("Storage failure while serving %s %s", request.method, request.path)
        return web.json_response({"error": "Storage failure"}, status=500)


async def handle_report(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    engine = request.app[ENGINE_KEY]

    check_token(request.headers.get("Authorization"), config.token)
    try:
        payload = await request.json()
    except ValueError as exc:
        raise KiloaValidationError("Request body is not valid JSON") from exc

    await asyncio.to_thread(engine.accept_report, payload)
    return web.json_response({"status": "ok"})


async def handle_list_nodes(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    engine = request.app[ENGINE_KEY]

    nodes = await asyncio.to_thread(engine.store.nodes.list_all)
    now = engine.now()
    views = project_nodes(nodes, now, online_window=config.online_threshold)
    stats = project_fleet(nodes, now, online_window=config.online_threshold)
    return web.json_response(
        {
            "nodes": [view.model_dump(mode="json", by_alias=True) for view in views],
            "stats": stats.model_dump(mode="json", by_alias=True),
        }
    )


async def handle_get_node(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    engine = request.app[ENGINE_KEY]
    node_id = request.match_info["node_id"]

    node = await asyncio.to_thread(engine.store.nodes.get, node_id)
    if node is None:
        return web.json_response({"error": "Node not found"}, status=404)
    view = project_node(node, engine.now(), online_window=config.online_threshold)
    return web.json_response(view.model_dump(mode="json", by_alias=True))


async def handle_node_history(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    node_id = request.match_info["node_id"]
    lookback = HistoryRange.parse(request.query.get("range"))

    samples = await asyncio.to_thread(engine.store.history.range, node_id, lookback.cutoff(engine.now()))
    return web.json_response([point.model_dump(mode="json") for point in project_history(samples)])


def _retention_ctx(engine: IngestionEngine, interval: float) -> Callable[[web.Application], AsyncIterator[None]]:
    async def _ctx(_app: web.Application) -> AsyncIterator[None]:
        task = asyncio.create_task(run_retention_loop(engine.prune_expired, interval=interval))
        _logger.info("Retention sweep scheduled every %.0f seconds", interval)
        yield
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    return _ctx


def create_app(
    config: KiloaConfig,
    store: Store,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> web.Application:
    """Build the web application around an already opened *store*.

    The caller owns *store* and closes it after the app shuts down.
    """
    engine = IngestionEngine.from_config(store, config, clock=clock)

    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config
    app[ENGINE_KEY] = engine
    app.router.add_post("/api/report", handle_report)
    app.router.add_get("/api/nodes", handle_list_nodes)
    app.router.add_get("/api/node/{node_id}", handle_get_node)
    app.router.add_get("/api/node/{node_id}/history", handle_node_history)

    if config.prune_interval > 0:
        app.cleanup_ctx.append(_retention_ctx(engine, config.prune_interval))
    return app
