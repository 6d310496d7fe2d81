from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from pinhole.front.server import create_app
from pinhole.shared.config import Settings


@pytest.fixture
def private_api():
    """Start an aiohttp app standing in for the private API.

    Usage: ``async with private_api(handler) as server: ...``
    """

    @asynccontextmanager
    async def start(handler):
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", handler)
        server = TestServer(app)
        await server.start_server()
        try:
            yield server
        finally:
            await server.close()

    return start


@pytest.fixture
def recorder():
    """Handler that records incoming requests and answers with a fixed body."""

    class Recorder:
        def __init__(self):
            self.requests = []
            self.status = 200
            self.body = b"ok"
            self.headers = []

        async def __call__(self, request: web.Request) -> web.Response:
            self.requests.append(
                {
                    "method": request.method,
                    "raw_path": request.raw_path,
                    "headers": request.headers,
                    "raw_headers": request.raw_headers,
                    "body": await request.read(),
                }
            )
            response = web.Response(body=self.body, status=self.status)
            for name, value in self.headers:
                response.headers.add(name, value)
            return response

    return Recorder()


def base_url(server: TestServer) -> str:
    return f"http://{server.host}:{server.port}"


@pytest.fixture
def url_of():
    return base_url


@pytest.fixture
def front():
    """Start the local front on a test server around ``channel``.

    Usage: ``async with front(channel) as client: ...``
    """

    @asynccontextmanager
    async def start(channel, verbose: bool = True):
        client = TestClient(TestServer(create_app(Settings(verbose=verbose), channel=channel)))
        await client.start_server()
        try:
            yield client
        finally:
            await client.close()

    return start
