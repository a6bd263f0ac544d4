"""
Admin HTTP API for a running match.

Runs in the same event loop as the match task and exposes a few REST
endpoints for operators and viewers:

    GET  /health    liveness probe
    GET  /status    phase, tick, seed and result of the current match
    GET  /snapshot  latest full snapshot
    POST /abort     stop the current match between ticks
"""

import asyncio
import logging
from typing import Optional

from aiohttp import web

from .match import MatchController

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8765


class AdminServer:
    """
    HTTP API server for match administration.

    The server never steps the match itself; it only reads the controller's
    state and requests aborts, which the controller applies between ticks.
    """

    def __init__(
        self,
        match: Optional[MatchController] = None,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
    ):
        self.host = host
        self.port = port
        self.match = match
        self.match_task: Optional[asyncio.Task] = None

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def set_match(self, match: MatchController, task: Optional[asyncio.Task] = None) -> None:
        """Point the API at a new match (and, optionally, the task running it)."""
        self.match = match
        self.match_task = task

    def make_app(self) -> web.Application:
        """Build the aiohttp application (also used directly by tests)."""
        self._app = web.Application()
        self._setup_routes()
        return self._app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        logger.info("Admin API running on http://%s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        logger.info("Admin API stopped")

    def _setup_routes(self) -> None:
        self._app.router.add_get("/health", self._handle_health)
        self._app.router.add_get("/status", self._handle_status)
        self._app.router.add_get("/snapshot", self._handle_snapshot)
        self._app.router.add_post("/abort", self._handle_abort)

    def _no_match(self) -> web.Response:
        return web.json_response({"error": "No match loaded"}, status=404)

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _handle_status(self, request: web.Request) -> web.Response:
        match = self.match
        if match is None:
            return self._no_match()
        return web.json_response({
            "phase": match.phase.value,
            "tick": match.tick,
            **match.rng.describe(),
            "fighters": [f.name for f in match.fighters],
            "running": match.is_running,
            "stalemateWarnings": len(match.stalemate_warnings),
            "result": match.result.to_dict() if match.result else None,
        })

    async def _handle_snapshot(self, request: web.Request) -> web.Response:
        match = self.match
        if match is None:
            return self._no_match()
        return web.json_response(match.snapshot())

    async def _handle_abort(self, request: web.Request) -> web.Response:
        match = self.match
        if match is None:
            return self._no_match()
        if match.is_finished:
            return web.json_response(
                {"error": f"Match already {match.phase.value}"},
                status=409,
            )

        reason = "admin request"
        if request.can_read_body:
            try:
                body = await request.json()
            except ValueError:
                return web.json_response({"error": "Invalid JSON"}, status=400)
            if isinstance(body, dict) and body.get("reason"):
                reason = str(body["reason"])

        logger.warning("Abort requested over admin API: %s", reason)
        tick = match.abort(reason)
        if self.match_task is not None and not self.match_task.done():
            self.match_task.cancel()

        return web.json_response({
            "status": "aborted",
            "tick": tick.tick,
            "snapshot": tick.snapshot,
        })
