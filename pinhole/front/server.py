"""
PinHole local front.

Accepts requests addressed to /api_url/<encoded-api-url>/proxy/<path> and
replays them inside the private network through the invocation channel.
"""

import asyncio
import sys
from collections.abc import AsyncIterator

import uvloop
from aiohttp import web

from pinhole.front.channel.base_channel import InvocationChannel
from pinhole.front.channel.nats_channel import NATSInvocationChannel
from pinhole.front.handlers import ProxyRequestHandler
from pinhole.shared.config import Settings, get_settings
from pinhole.shared.logging import get_logger, setup_logging
from pinhole.shared.nats_client import cleanup_nats, setup_nats

logger = get_logger(__name__)


class PinHoleFront:
    """Local front: owns the handler and, when none is given, the NATS channel."""

    def __init__(self, settings: Settings | None = None, channel: InvocationChannel | None = None) -> None:
        self.settings = settings or get_settings()
        self.handlers = ProxyRequestHandler(channel, verbose=self.settings.verbose)

    def setup_routes(self, app: web.Application) -> None:
        """Configure application routes."""
        app.router.add_route("*", "/api_url/{path:.*}", self.handlers.handle)

    async def _nats_channel(self, app: web.Application) -> AsyncIterator[None]:
        """Open a NATS channel for the lifetime of the app unless one was injected."""
        nats_client = None
        if self.handlers.channel is None:
            nats_client = await setup_nats(self.settings.nats_url, name="pinhole-front")
            self.handlers.channel = NATSInvocationChannel(
                nats_client, self.settings.function_name, timeout=self.settings.invoke_timeout
            )

        yield

        await cleanup_nats(nats_client)

    def create_app(self) -> web.Application:
        # Bodies are buffered whole, bounded only by memory
        app = web.Application(client_max_size=sys.maxsize)
        app.cleanup_ctx.append(self._nats_channel)
        self.setup_routes(app)
        return app

    async def start(self) -> None:
        """Start the local front and serve until cancelled."""
        runner = web.AppRunner(self.create_app())
        await runner.setup()

        site = web.TCPSite(runner, self.settings.host, self.settings.port)
        await site.start()

        base = f"http://{self.settings.host}:{self.settings.port}"
        logger.info(f"Starting to serve on {base}")
        logger.info(f"Proxying requests to function: {self.handlers.channel.describe()}")
        logger.info(f"Usage: {base}/api_url/<url-encoded-internal-api-url>/proxy/<path>")

        try:
            await asyncio.Event().wait()
        finally:
            await runner.cleanup()
            logger.info("Local front stopped")


def create_app(settings: Settings | None = None, channel: InvocationChannel | None = None) -> web.Application:
    """Create the local front application."""
    return PinHoleFront(settings, channel).create_app()


def main() -> None:
    """Entry point for the local front."""
    settings = get_settings()
    setup_logging(settings.log_level)

    try:
        uvloop.run(PinHoleFront(settings).start())
    except KeyboardInterrupt:
        logger.info("Local front stopped by user")


if __name__ == "__main__":
    main()
