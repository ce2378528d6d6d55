"""HTTP utilities"""

from typing import Optional

import httpx

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "replaywire/0.1.0",
    "Accept": "application/json",
}


def _merged_headers(headers: Optional[dict[str, str]]) -> dict[str, str]:
    merged = dict(DEFAULT_HEADERS)
    if headers:
        merged.update(headers)
    return merged


def create_http_client(
    context=None,
    timeout: float = 30.0,
    headers: Optional[dict[str, str]] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create an HTTP client, routed through a replay context if given.

    Args:
        context: Optional ReplayContext intercepting every request
        timeout: Request timeout in seconds
        headers: Additional headers
        transport: Live transport (default ``httpx.HTTPTransport``)

    Returns:
        Configured httpx.Client
    """
    live = transport if transport is not None else httpx.HTTPTransport()
    if context is not None:
        logger.debug("Routing HTTP client through replay context")
        live = context.transport(live)

    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        transport=live,
        headers=_merged_headers(headers),
        follow_redirects=True,
    )


def create_async_http_client(
    context=None,
    timeout: float = 30.0,
    headers: Optional[dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Async counterpart of :func:`create_http_client`."""
    live = transport if transport is not None else httpx.AsyncHTTPTransport()
    if context is not None:
        logger.debug("Routing async HTTP client through replay context")
        live = context.async_transport(live)

    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        transport=live,
        headers=_merged_headers(headers),
        follow_redirects=True,
    )
