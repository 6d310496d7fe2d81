"""Envelope models exchanged between the local front and the replay function."""

from collections.abc import Iterable, Iterator
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

HeaderMap = dict[str, list[str]]


def is_host_header(name: str) -> bool:
    return name.lower() == "host"


def decode_raw_headers(raw_headers: Iterable[tuple[bytes, bytes]]) -> Iterator[tuple[str, str]]:
    """Decode raw header pairs as received on the wire, spelling untouched."""
    for name, value in raw_headers:
        yield name.decode("utf-8", errors="replace"), value.decode("utf-8", errors="replace")


def headers_from_pairs(pairs: Iterable[tuple[str, str]], *, drop_host: bool = False) -> HeaderMap:
    """
    Group ordered ``(name, value)`` pairs by exact header name.

    Names keep their original spelling, values keep their arrival order and
    duplicates are never merged.

    Args:
        pairs: Header pairs in the order they were received
        drop_host: Skip ``Host`` (any casing)

    Returns:
        Header multimap
    """
    headers: HeaderMap = {}
    for name, value in pairs:
        if drop_host and is_host_header(name):
            continue
        headers.setdefault(name, []).append(value)
    return headers


def iter_header_pairs(headers: HeaderMap, *, drop_host: bool = False) -> Iterator[tuple[str, str]]:
    """Flatten a header multimap back into ordered ``(name, value)`` pairs."""
    for name, values in headers.items():
        if drop_host and is_host_header(name):
            continue
        for value in values:
            yield name, value


class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("headers", mode="before", check_fields=False)
    @classmethod
    def _null_headers(cls, value):
        return {} if value is None else value

    @field_validator("body", mode="before", check_fields=False)
    @classmethod
    def _null_body(cls, value):
        return "" if value is None else value


class ProxyRequest(_Envelope):
    """Request envelope sent from the local front to the replay function."""

    method: Annotated[str, Field(description="HTTP method")]
    path: Annotated[str, Field(description="Path on the private API")] = "/"
    headers: Annotated[HeaderMap, Field(description="HTTP headers")] = {}
    body: Annotated[str, Field(description="Request body (base64 encoded)")] = ""
    query: Annotated[str, Field(description="Raw query string")] = ""
    private_api_url: Annotated[
        str, Field(alias="privateApiUrl", description="Base URL of the private API")
    ] = ""

    @field_validator("path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else "/" + value


class ProxyResponse(_Envelope):
    """Response envelope returned by the replay function."""

    status_code: Annotated[
        int, Field(alias="statusCode", ge=100, le=599, description="HTTP status code")
    ]
    headers: Annotated[HeaderMap, Field(description="Response headers")] = {}
    body: Annotated[str, Field(description="Response body (base64 encoded)")] = ""


class FunctionError(BaseModel):
    """Error payload returned when the replay function fails unhandled."""

    model_config = ConfigDict(populate_by_name=True)

    error_message: Annotated[str, Field(alias="errorMessage")] = ""
    error_type: Annotated[str, Field(alias="errorType")] = "Unhandled"
