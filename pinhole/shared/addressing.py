"""Path-based addressing of private targets.

A public path looks like ``<percent-encoded-base-url>/proxy/<forward-path>``
(the part that follows ``/api_url/`` on the local front). The encoded base URL
never contains a literal ``/``, so the first ``/proxy/`` is always the split
point and anything after it is forwarded as-is.
"""

import re
from typing import NamedTuple
from urllib.parse import quote, unquote, urlsplit

from pinhole.shared.errors import MalformedAddressError

PREFIX = "/api_url/"
SEPARATOR = "/proxy/"
USAGE = "Expected: /api_url/<encoded-api-url>/proxy/<path>"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class Address(NamedTuple):
    base_url: str
    path: str


def normalize_path(path: str) -> str:
    return path if path.startswith("/") else "/" + path


def encode_address(base_url: str, path: str) -> str:
    """Build the public path segment for ``base_url`` and ``path``."""
    return quote(base_url, safe="") + SEPARATOR + normalize_path(path)[1:]


def decode_address(public_path: str) -> Address:
    """
    Split a public path into the private base URL and the forward path.

    Args:
        public_path: Path after the ``/api_url/`` prefix, still percent-encoded

    Returns:
        Decoded address

    Raises:
        MalformedAddressError: If the path is missing the separator, the
            encoded URL is empty or undecodable, or it has no scheme/host
    """
    if not public_path:
        raise MalformedAddressError(f"Missing path. {USAGE}")

    encoded_url, sep, rest = public_path.partition(SEPARATOR)
    if not sep or not encoded_url:
        raise MalformedAddressError(f"Invalid path format. {USAGE}")

    if _BAD_ESCAPE.search(encoded_url):
        raise MalformedAddressError(f"Failed to decode API URL: invalid escape in {encoded_url!r}")

    base_url = unquote(encoded_url)
    try:
        parts = urlsplit(base_url)
    except ValueError as exc:
        raise MalformedAddressError(f"Failed to decode API URL: {exc}") from exc
    if not parts.scheme or not parts.netloc:
        raise MalformedAddressError(f"Failed to decode API URL: {base_url!r} is not an absolute URL")

    return Address(base_url=base_url, path="/" + rest)


def strip_prefix(raw_path: str) -> str:
    """Return the part of a request path that follows ``/api_url/``."""
    if raw_path.startswith(PREFIX):
        return raw_path[len(PREFIX):]
    return ""
