"""HTTP request handler of the local front."""

from aiohttp import hdrs, web
from multidict import CIMultiDict

from pinhole.front.channel.base_channel import InvocationChannel
from pinhole.shared.addressing import Address, decode_address, strip_prefix
from pinhole.shared.codec import decode_body, dump_request, encode_body, load_response
from pinhole.shared.errors import BodyDecodeError, EnvelopeDecodeError, InvocationError, MalformedAddressError
from pinhole.shared.logging import get_logger
from pinhole.shared.models import (
    ProxyRequest,
    ProxyResponse,
    decode_raw_headers,
    headers_from_pairs,
    iter_header_pairs,
)

logger = get_logger(__name__)

# Regenerated by the server for the body we actually send
FRAMING_HEADERS = frozenset({"content-length", "transfer-encoding"})


class ProxyRequestHandler:
    """
    Encapsulates all logic related to handling HTTP requests that must be
    replayed against a private API through the invocation channel.
    """

    def __init__(self, channel: InvocationChannel | None = None, verbose: bool = False) -> None:
        self.channel = channel
        self.verbose = verbose

    def _get_channel(self) -> InvocationChannel:
        if self.channel is None:
            raise RuntimeError("Invocation channel is not initialized")
        return self.channel

    async def handle(self, request: web.Request) -> web.Response:
        """Public entry point used by the aiohttp router."""
        if self.verbose:
            logger.info(f"Received {request.method} request to {request.path}")

        try:
            address = self._extract_address(request)
        except MalformedAddressError as exc:
            return web.Response(text=str(exc), status=400)

        if self.verbose:
            logger.info(f"Target API URL: {address.base_url}")
            logger.info(f"API Path: {address.path}")

        try:
            body_bytes = await request.read()
        except ConnectionError as exc:
            logger.error(f"Failed to read request body: {exc}")
            return web.Response(text=f"Failed to read request body: {exc}", status=500)

        proxy_req = self._build_proxy_request(request, address, body_bytes)

        try:
            payload = await self._get_channel().invoke(dump_request(proxy_req))
        except InvocationError as exc:
            logger.error(f"Invocation error: {exc}")
            return web.Response(text=f"Invocation failed: {exc}", status=502)

        try:
            proxy_resp = load_response(payload)
        except EnvelopeDecodeError as exc:
            logger.error(f"Invalid response envelope: {exc}")
            return web.Response(text=f"Invalid function response: {exc}", status=500)

        if self.verbose:
            logger.info(f"Response: {proxy_resp.status_code}")

        return self._build_http_response(proxy_resp, request.method)

    def _extract_address(self, request: web.Request) -> Address:
        """Decode the private base URL and forward path from the raw request path."""
        path = request.raw_path.split("?", 1)[0]
        return decode_address(strip_prefix(path))

    def _build_proxy_request(self, request: web.Request, address: Address, body_bytes: bytes) -> ProxyRequest:
        """Convert incoming aiohttp request → ProxyRequest."""
        return ProxyRequest(
            method=request.method,
            path=address.path,
            headers=headers_from_pairs(decode_raw_headers(request.raw_headers), drop_host=True),
            body=encode_body(body_bytes),
            query=request.rel_url.raw_query_string,
            private_api_url=address.base_url,
        )

    def _build_http_response(self, proxy_resp: ProxyResponse, method: str) -> web.Response:
        """
        Translate ProxyResponse → aiohttp Response.

        Headers are copied pair by pair so repeated names survive. A body that
        is not valid base64 is forwarded as raw text. A HEAD answer keeps the
        upstream Content-Length since it describes a body we never send.
        """
        try:
            body_bytes = decode_body(proxy_resp.body)
        except BodyDecodeError as exc:
            logger.warning(f"Failed to decode base64 response: {exc}")
            body_bytes = proxy_resp.body.encode()

        keep_length = method == hdrs.METH_HEAD
        headers = CIMultiDict(
            (name, value)
            for name, value in iter_header_pairs(proxy_resp.headers)
            if name.lower() not in FRAMING_HEADERS or (keep_length and name.lower() == "content-length")
        )

        return web.Response(body=body_bytes, status=proxy_resp.status_code, headers=headers)
