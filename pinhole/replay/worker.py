"""Replay worker serving the invocation channel over NATS."""

import asyncio

import uvloop
from nats.aio.client import Client as NATSClient
from nats.aio.msg import Msg

from pinhole.replay.handler import ReplayHandler
from pinhole.shared.codec import dump_function_error
from pinhole.shared.config import Settings, get_settings
from pinhole.shared.logging import get_logger, setup_logging
from pinhole.shared.nats_client import FUNCTION_ERROR_HEADER, cleanup_nats, setup_nats

logger = get_logger(__name__)


class ReplayWorker:
    """Subscribes to the function subject and answers every request envelope."""

    def __init__(
        self,
        nats_client: NATSClient,
        subject: str,
        handler: ReplayHandler,
        queue: str = "",
    ) -> None:
        self._nats_client = nats_client
        self._subject = subject
        self._queue = queue
        self._handler = handler
        self._tasks: set[asyncio.Task] = set()
        self._subscription = None

    async def start(self) -> None:
        self._subscription = await self._nats_client.subscribe(
            self._subject, queue=self._queue, cb=self._on_message
        )
        logger.info(f"Replay worker listening on {self._subject} (queue: {self._queue or '-'})")

    async def stop(self) -> None:
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _on_message(self, msg: Msg) -> None:
        # NATS runs callbacks one after another; give every request its own task
        task = asyncio.create_task(self.process(msg))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def process(self, msg: Msg) -> None:
        """Replay one request and publish the reply to its inbox."""
        if not msg.reply:
            logger.warning(f"Dropping message on {msg.subject} without reply subject")
            return

        headers = None
        try:
            data = await self._handler.handle_payload(msg.data)
        except Exception as exc:
            logger.exception(f"Replay failed: {exc}")
            data = dump_function_error(exc)
            headers = {FUNCTION_ERROR_HEADER: "Unhandled"}

        await self._nats_client.publish(msg.reply, data, headers=headers)


async def serve(settings: Settings) -> None:
    """Run a replay worker until cancelled."""
    if settings.upstream_skip_tls_verify:
        logger.warning("TLS certificate validation is disabled for calls to the private API")

    nats_client = await setup_nats(settings.nats_url, name="pinhole-replay")
    handler = ReplayHandler(
        timeout=settings.upstream_timeout,
        skip_tls_verify=settings.upstream_skip_tls_verify,
    )
    worker = ReplayWorker(nats_client, settings.function_name, handler, queue=settings.worker_queue)

    await worker.start()
    try:
        await asyncio.Event().wait()
    finally:
        await worker.stop()
        await cleanup_nats(nats_client)


def main() -> None:
    """Entry point for the replay worker."""
    settings = get_settings()
    setup_logging(settings.log_level)

    try:
        uvloop.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Replay worker stopped by user")


if __name__ == "__main__":
    main()
