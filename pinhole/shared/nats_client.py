"""NATS connection helpers shared by the front and the replay worker."""

import nats
from nats.aio.client import Client as NATSClient

from pinhole.shared.logging import get_logger

logger = get_logger(__name__)

# Set on replies whose payload is a FunctionError instead of a response envelope
FUNCTION_ERROR_HEADER = "Function-Error"


async def _on_error(exc: Exception) -> None:
    logger.error(f"NATS error: {exc}")


async def _on_disconnected() -> None:
    logger.warning("Disconnected from NATS, reconnecting")


async def _on_reconnected() -> None:
    logger.info("Reconnected to NATS")


async def setup_nats(url: str, name: str | None = None) -> NATSClient:
    """
    Connect to NATS server.

    Args:
        url: NATS server URL
        name: Connection name reported to the server

    Returns:
        Connected client
    """
    nc = await nats.connect(
        url,
        name=name,
        error_cb=_on_error,
        disconnected_cb=_on_disconnected,
        reconnected_cb=_on_reconnected,
    )
    logger.info(f"Connected to NATS at {url}")

    return nc


async def cleanup_nats(nc: NATSClient | None):
    """Drain and close the connection, if any."""
    if nc:
        await nc.drain()
        logger.info("Disconnected from NATS")
