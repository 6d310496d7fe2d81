"""Replays request envelopes against the private target."""

import asyncio

import aiohttp
from multidict import CIMultiDict
from yarl import URL

from pinhole.shared.codec import decode_body, dump_response, encode_body, load_request
from pinhole.shared.errors import BodyDecodeError, UpstreamError
from pinhole.shared.logging import get_logger
from pinhole.shared.models import (
    ProxyRequest,
    ProxyResponse,
    decode_raw_headers,
    headers_from_pairs,
    iter_header_pairs,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


def _error_response(status_code: int, message: str) -> ProxyResponse:
    return ProxyResponse(status_code=status_code, body=encode_body(message.encode()))


def build_target_url(request: ProxyRequest) -> str:
    url = request.private_api_url.rstrip("/") + request.path
    if request.query:
        url = f"{url}?{request.query}"
    return url


class ReplayHandler:
    """
    Rebuilds an HTTP request from an envelope, runs it against the private
    target and wraps the result into a response envelope.

    Each call opens its own client session; nothing is kept between calls.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, skip_tls_verify: bool = False):
        """
        Args:
            timeout: Total timeout for the outbound call in seconds
            skip_tls_verify: Disable certificate validation for the target.
                Only meant for targets inside a network the operator controls.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._skip_tls_verify = skip_tls_verify

    async def handle_payload(self, payload: bytes) -> bytes:
        """Decode a serialized request envelope, replay it and serialize the reply."""
        request = load_request(payload)
        response = await self.replay(request)
        return dump_response(response)

    async def replay(self, request: ProxyRequest) -> ProxyResponse:
        """
        Replay ``request`` against its private target.

        Returns:
            Response envelope. Missing target or an undecodable body produce a
            400 envelope rather than an exception.

        Raises:
            UpstreamError: If the private target cannot be reached
        """
        if not request.private_api_url:
            return _error_response(400, "Missing required privateApiUrl in request")

        target = build_target_url(request)

        body = None
        if request.body:
            try:
                body = decode_body(request.body)
            except BodyDecodeError as exc:
                return _error_response(400, str(exc))

        try:
            url = URL(target, encoded=True)
        except (ValueError, TypeError) as exc:
            return _error_response(500, f"failed to create HTTP request: {exc}")

        # The body is sent in one piece, aiohttp sets the framing itself
        headers = CIMultiDict(
            (name, value)
            for name, value in iter_header_pairs(request.headers, drop_host=True)
            if name.lower() != "transfer-encoding"
        )

        logger.info(f"Replaying {request.method} {target}")

        connector = aiohttp.TCPConnector(ssl=False) if self._skip_tls_verify else None
        try:
            async with aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                auto_decompress=False,
                skip_auto_headers=("Accept-Encoding", "User-Agent"),
            ) as session:
                async with session.request(request.method, url, headers=headers, data=body) as resp:
                    resp_body = await resp.read()
                    resp_headers = headers_from_pairs(decode_raw_headers(resp.raw_headers))
                    status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            reason = str(exc) or type(exc).__name__
            logger.error(f"Call to private API {target} failed: {reason}")
            raise UpstreamError(f"failed to call private API: {reason}") from exc

        logger.info(f"Private API answered {status} ({len(resp_body)} bytes)")

        return ProxyResponse(status_code=status, headers=resp_headers, body=encode_body(resp_body))
