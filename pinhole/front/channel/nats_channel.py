"""NATS request/reply invocation channel."""

import asyncio

from nats.aio.client import Client as NATSClient
from nats.errors import Error as NATSError

from pinhole.front.channel.base_channel import InvocationChannel
from pinhole.shared.codec import load_function_error
from pinhole.shared.errors import InvocationError
from pinhole.shared.logging import get_logger
from pinhole.shared.nats_client import FUNCTION_ERROR_HEADER

logger = get_logger(__name__)


class NATSInvocationChannel(InvocationChannel):
    """Invokes the replay function through a NATS request on its subject."""

    def __init__(self, nats_client: NATSClient, subject: str, timeout: float = 35.0):
        """
        Initialize NATS channel.

        Args:
            nats_client: Connected NATS client
            subject: Subject the replay workers subscribe to
            timeout: Request timeout in seconds
        """
        self._nats_client = nats_client
        self._subject = subject
        self._timeout = timeout

    def describe(self) -> str:
        return f"nats subject {self._subject}"

    async def invoke(self, payload: bytes) -> bytes:
        logger.debug("Sending request to NATS subject", extra={"subject": self._subject})

        try:
            msg = await self._nats_client.request(
                self._subject,
                payload,
                timeout=self._timeout,
            )
        except (NATSError, asyncio.TimeoutError) as exc:
            reason = str(exc) or type(exc).__name__
            raise InvocationError(f"invoke {self._subject}: {reason}") from exc

        if msg.headers and FUNCTION_ERROR_HEADER in msg.headers:
            error = load_function_error(msg.data)
            raise InvocationError(
                f"function error: {msg.headers[FUNCTION_ERROR_HEADER]}: "
                f"{error.error_type}: {error.error_message}"
            )

        logger.debug("Received reply from NATS", extra={"subject": self._subject})

        return msg.data
