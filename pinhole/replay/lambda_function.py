"""Function-platform entry point for the replay side.

The platform hands over the request envelope as a decoded JSON mapping and
serializes whatever mapping we return. Raising marks the invocation as a
function error, which the local front turns into a 502.
"""

import asyncio
from typing import Any, Mapping

from pinhole.replay.handler import ReplayHandler
from pinhole.shared.config import get_settings
from pinhole.shared.logging import get_logger, setup_logging
from pinhole.shared.models import ProxyRequest

logger = get_logger(__name__)


def build_handler() -> ReplayHandler:
    settings = get_settings()
    return ReplayHandler(
        timeout=settings.upstream_timeout,
        skip_tls_verify=settings.upstream_skip_tls_verify,
    )


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    setup_logging(get_settings().log_level)
    request = ProxyRequest.model_validate(event)
    response = asyncio.run(build_handler().replay(request))
    return response.model_dump(by_alias=True)
