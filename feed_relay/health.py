"""
Minimal HTTP listener for liveness checks.
"""

import logging

from aiohttp import web

logger = logging.getLogger(__name__)

MESSAGE_KEY = web.AppKey("message", str)


async def _root(request: web.Request) -> web.Response:
    return web.Response(text=request.app[MESSAGE_KEY])


def create_app(message: str) -> web.Application:
    """Build the aiohttp application serving ``message`` on ``/``."""
    app = web.Application()
    app[MESSAGE_KEY] = message
    app.router.add_get("/", _root)
    return app


class HealthServer:
    """Serve a static liveness string on the root route."""

    def __init__(self, host: str = "0.0.0.0", port: int = 8080, message: str = "OK"):
        self.host = host
        self.port = port
        self.message = message
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Bind the listener and start serving."""
        self._runner = web.AppRunner(create_app(self.message), access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Health endpoint listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Stop serving and release the socket."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.debug("Health endpoint stopped")
