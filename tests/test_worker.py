import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from pinhole.replay.handler import ReplayHandler
from pinhole.replay.worker import ReplayWorker
from pinhole.shared.codec import decode_body
from pinhole.shared.errors import UpstreamError
from pinhole.shared.nats_client import FUNCTION_ERROR_HEADER


def make_nats_client() -> MagicMock:
    nats_client = MagicMock()
    nats_client.publish = AsyncMock()
    nats_client.subscribe = AsyncMock()
    return nats_client


def make_msg(payload: dict, reply: str = "_INBOX.abc") -> SimpleNamespace:
    return SimpleNamespace(data=json.dumps(payload).encode(), reply=reply, subject="pinhole-replay")


@pytest.mark.asyncio
async def test_start_subscribes_with_queue_group():
    nats_client = make_nats_client()
    worker = ReplayWorker(nats_client, "pinhole-replay", ReplayHandler(), queue="workers")

    await worker.start()

    nats_client.subscribe.assert_awaited_once()
    args, kwargs = nats_client.subscribe.call_args
    assert args == ("pinhole-replay",)
    assert kwargs["queue"] == "workers"


@pytest.mark.asyncio
async def test_reply_carries_response_envelope():
    nats_client = make_nats_client()
    worker = ReplayWorker(nats_client, "pinhole-replay", ReplayHandler())

    await worker.process(make_msg({"method": "GET", "path": "/", "privateApiUrl": ""}))

    subject, data = nats_client.publish.call_args.args
    assert subject == "_INBOX.abc"
    assert nats_client.publish.call_args.kwargs["headers"] is None
    reply = json.loads(data)
    assert reply["statusCode"] == 400
    assert b"privateApiUrl" in decode_body(reply["body"])


@pytest.mark.asyncio
async def test_handler_failure_is_reported_as_function_error():
    nats_client = make_nats_client()
    handler = MagicMock()
    handler.handle_payload = AsyncMock(side_effect=UpstreamError("failed to call private API: refused"))
    worker = ReplayWorker(nats_client, "pinhole-replay", handler)

    await worker.process(make_msg({"method": "GET", "privateApiUrl": "http://10.0.0.1"}))

    _, data = nats_client.publish.call_args.args
    assert nats_client.publish.call_args.kwargs["headers"] == {FUNCTION_ERROR_HEADER: "Unhandled"}
    error = json.loads(data)
    assert error["errorType"] == "UpstreamError"
    assert "refused" in error["errorMessage"]


@pytest.mark.asyncio
async def test_invalid_envelope_is_reported_as_function_error():
    nats_client = make_nats_client()
    worker = ReplayWorker(nats_client, "pinhole-replay", ReplayHandler())

    await worker.process(SimpleNamespace(data=b"garbage", reply="_INBOX.x", subject="pinhole-replay"))

    assert nats_client.publish.call_args.kwargs["headers"] == {FUNCTION_ERROR_HEADER: "Unhandled"}
    assert json.loads(nats_client.publish.call_args.args[1])["errorType"] == "EnvelopeDecodeError"


@pytest.mark.asyncio
async def test_message_without_reply_is_dropped():
    nats_client = make_nats_client()
    worker = ReplayWorker(nats_client, "pinhole-replay", ReplayHandler())

    await worker.process(make_msg({"method": "GET"}, reply=""))

    nats_client.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_messages_are_processed_as_tasks():
    nats_client = make_nats_client()
    worker = ReplayWorker(nats_client, "pinhole-replay", ReplayHandler())

    await worker._on_message(make_msg({"method": "GET", "privateApiUrl": ""}))
    await worker.stop()

    nats_client.publish.assert_awaited_once()
