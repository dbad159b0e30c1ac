"""Health endpoint served alongside the Telegram bot."""

import logging

from aiohttp import web

from chatrecall.context import AppContext

logger = logging.getLogger(__name__)


class WebServer:
    """HTTP server exposing dependency health."""

    def __init__(self, context: AppContext, port: int = 3000):
        self.context = context
        self.port = port
        self.app = web.Application()
        self._setup_routes()
        logger.info(f"Web server initialized on port {port}")

    def _setup_routes(self) -> None:
        self.app.router.add_get("/", self._handle_health)
        self.app.router.add_get("/health", self._handle_health)

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Report index engine and completion provider health.

        Returns 200 when both are reachable and 503 otherwise.
        """
        try:
            checks = await self.context.health_check()
        except Exception as e:
            logger.error(f"Health check failed: {e}", exc_info=True)
            return web.json_response({"status": "unhealthy", "error": str(e)}, status=503)

        healthy = all(checks.values())
        return web.json_response(
            {"status": "healthy" if healthy else "degraded", "service": "chatrecall", "checks": checks},
            status=200 if healthy else 503,
        )

    async def start(self) -> web.AppRunner:
        """Start the web server."""
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, "0.0.0.0", self.port)
        await site.start()
        logger.info(f"Health endpoint: http://localhost:{self.port}/health")
        return runner

    async def stop(self, runner: web.AppRunner) -> None:
        await runner.cleanup()
        logger.info("Web server stopped")
