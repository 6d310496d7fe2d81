"""Envelope and body codec.

Envelopes travel as JSON using the wire keys of the request/response models.
Bodies are carried as standard base64 so arbitrary bytes survive the trip.
"""

import base64
import binascii

from pydantic import ValidationError

from pinhole.shared.errors import BodyDecodeError, EnvelopeDecodeError
from pinhole.shared.models import FunctionError, ProxyRequest, ProxyResponse


def encode_body(data: bytes) -> str:
    if not data:
        return ""
    return base64.b64encode(data).decode("ascii")


def decode_body(text: str) -> bytes:
    """Decode a base64 body, rejecting anything outside the base64 alphabet."""
    if not text:
        return b""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise BodyDecodeError(f"failed to decode base64 body: {exc}") from exc


def dump_request(request: ProxyRequest) -> bytes:
    return request.model_dump_json(by_alias=True).encode()


def load_request(payload: bytes | str) -> ProxyRequest:
    try:
        return ProxyRequest.model_validate_json(payload)
    except ValidationError as exc:
        raise EnvelopeDecodeError(f"unmarshal request envelope: {exc}") from exc


def dump_response(response: ProxyResponse) -> bytes:
    return response.model_dump_json(by_alias=True).encode()


def load_response(payload: bytes | str) -> ProxyResponse:
    try:
        return ProxyResponse.model_validate_json(payload)
    except ValidationError as exc:
        raise EnvelopeDecodeError(f"unmarshal response envelope: {exc}") from exc


def dump_function_error(exc: BaseException) -> bytes:
    error = FunctionError(error_message=str(exc), error_type=type(exc).__name__)
    return error.model_dump_json(by_alias=True).encode()


def load_function_error(payload: bytes) -> FunctionError:
    """Parse an error payload, keeping the raw text when it is not JSON."""
    try:
        return FunctionError.model_validate_json(payload)
    except ValidationError:
        return FunctionError(error_message=payload.decode("utf-8", errors="replace"))
