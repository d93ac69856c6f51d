"""
Token Radar HTTP API

GET /api/tokens  - run one scan cycle, return the top tokens (dashboard polls this)
GET /health      - cursor position and cycle counters

The dashboard is a separate consumer; this module only serves JSON.
"""
import time
import asyncio
import logging
from typing import Optional

from aiohttp import web

from radar.scan_coordinator import ScanCoordinator

logger = logging.getLogger(__name__)

COORDINATOR_KEY = web.AppKey("coordinator", ScanCoordinator)
STARTED_AT_KEY = web.AppKey("started_at", float)


async def tokens_handler(request: web.Request) -> web.Response:
    coordinator = request.app[COORDINATOR_KEY]
    summary = await coordinator.run_cycle()
    return web.json_response(summary.to_response(), status=summary.status_code)


async def health_handler(request: web.Request) -> web.Response:
    coordinator = request.app[COORDINATOR_KEY]
    status = coordinator.get_status()
    status['ok'] = True
    status['uptime_seconds'] = round(time.time() - request.app[STARTED_AT_KEY], 1)
    return web.json_response(status)


def create_app(coordinator: ScanCoordinator, scheduler=None) -> web.Application:
    """
    Build the aiohttp application.

    Args:
        coordinator: ScanCoordinator serving /api/tokens
        scheduler: Optional ScanScheduler run in the background for the app's lifetime
    """
    app = web.Application()
    app[COORDINATOR_KEY] = coordinator
    app[STARTED_AT_KEY] = time.time()
    app.add_routes([
        web.get('/api/tokens', tokens_handler),
        web.get('/health', health_handler),
    ])

    if scheduler is not None:
        async def background_scans(app: web.Application):
            task = asyncio.create_task(scheduler.run_forever())
            yield
            scheduler.stop()
            await task

        app.cleanup_ctx.append(background_scans)

    return app


def run_server(coordinator: ScanCoordinator, host: str, port: int, scheduler: Optional[object] = None):
    logger.info(f"🌐 Token API listening on http://{host}:{port}/api/tokens")
    web.run_app(create_app(coordinator, scheduler), host=host, port=port, print=None)
