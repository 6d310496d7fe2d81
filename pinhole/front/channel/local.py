"""In-process invocation channel that calls the replay handler directly."""

from pinhole.front.channel.base_channel import InvocationChannel
from pinhole.replay.handler import ReplayHandler
from pinhole.shared.errors import InvocationError


class LocalInvocationChannel(InvocationChannel):
    """Runs the replay handler in the same process, for development and tests."""

    def __init__(self, handler: ReplayHandler):
        self._handler = handler

    async def invoke(self, payload: bytes) -> bytes:
        try:
            return await self._handler.handle_payload(payload)
        except Exception as exc:
            raise InvocationError(f"function error: {type(exc).__name__}: {exc}") from exc
