"""
Shared HTTP plumbing for the lookup clients.

One pooled httpx.AsyncClient is shared by every client in a pipeline; it is
read-only after construction and safe to use from concurrent resolutions.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jukebox_meta.errors import ProtocolViolation, TransportError
from jukebox_meta.safe_logging import redact_url

logger = logging.getLogger(__name__)


def build_http_client(timeout_s: float = 30.0, user_agent: str | None = None) -> httpx.AsyncClient:
    """Create the pooled async client used by all lookup services."""
    headers = {"Accept": "application/json"}
    if user_agent:
        headers["User-Agent"] = user_agent
    return httpx.AsyncClient(timeout=timeout_s, headers=headers, follow_redirects=True)


async def fetch_json(
    client: httpx.AsyncClient,
    service: str,
    url: str,
    params: dict[str, str] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """
    GET a JSON document, mapping failures onto the resolution error taxonomy.

    Args:
        client: Shared HTTP client
        service: Service name used in log lines and error messages
        url: Endpoint URL
        params: Query parameters
        headers: Extra per-request headers

    Returns:
        Decoded JSON body

    Raises:
        TransportError: On network failure, timeout, or non-2xx status
        ProtocolViolation: If a 2xx body is not valid JSON
    """
    try:
        response = await client.get(url, params=params, headers=headers)
    except httpx.HTTPError as e:
        raise TransportError(service, f"request failed: {e}") from e

    logger.debug("%s query final url: %s", service, redact_url(response.url))

    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise TransportError(
            service,
            f"HTTP {response.status_code} from {redact_url(response.url)}",
            status_code=response.status_code,
        ) from e

    logger.debug("%s returned text: %s", service, response.text)

    try:
        return response.json()
    except ValueError as e:
        raise ProtocolViolation(service, f"response is not valid JSON: {e}") from e
