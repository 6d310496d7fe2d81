"""Abstract invocation channel used by the local front."""

from abc import ABC, abstractmethod


class InvocationChannel(ABC):
    """Delivers a serialized request envelope to the replay function."""

    @abstractmethod
    async def invoke(self, payload: bytes) -> bytes:
        """
        Invoke the replay function and wait for its reply.

        Args:
            payload: Serialized request envelope

        Returns:
            Serialized response envelope as returned by the function

        Raises:
            InvocationError: If the channel fails or the function reports an error
        """
        pass

    def describe(self) -> str:
        """Human readable target of the channel, used in startup logs."""
        return type(self).__name__
