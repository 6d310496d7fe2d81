"""Exception hierarchy shared by the front and the replay side."""


class PinHoleError(Exception):
    """Base class for all PinHole errors."""


class MalformedAddressError(PinHoleError):
    """The public path does not decode to a base URL and a forward path."""


class BodyDecodeError(PinHoleError):
    """An envelope body is not valid base64."""


class EnvelopeDecodeError(PinHoleError):
    """A payload is not a valid request or response envelope."""


class InvocationError(PinHoleError):
    """The invocation channel failed or the remote function reported an error."""


class UpstreamError(PinHoleError):
    """The replay side could not reach the private target."""
