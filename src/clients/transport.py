"""Shared httpx plumbing: timeouts and request dispatch."""

import asyncio
from typing import Any, Optional

import httpx

from src.clients.errors import OperaTimeoutError
from src.config.settings import OperaSettings

USER_AGENT = "OperaBookingConnector/1.0"


def build_timeout(opera_settings: OperaSettings) -> httpx.Timeout:
    """httpx timeout with a dedicated connect bound."""
    return httpx.Timeout(
        opera_settings.request_timeout,
        connect=opera_settings.connect_timeout,
    )


def build_http_client(
    opera_settings: OperaSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the AsyncClient shared by the token cache and the API client."""
    return httpx.AsyncClient(
        timeout=build_timeout(opera_settings),
        transport=transport,
        headers={"User-Agent": USER_AGENT},
    )


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    request_timeout: float,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request bounded by the overall request timeout.

    httpx only bounds individual connect/read/write phases; ``asyncio.wait_for``
    caps the whole exchange.

    Raises:
        OperaTimeoutError: If the connect or the overall timeout is exceeded
        httpx.RequestError: For other transport failures
    """
    try:
        return await asyncio.wait_for(
            client.request(method, url, **kwargs),
            timeout=request_timeout,
        )
    except (httpx.TimeoutException, asyncio.TimeoutError) as e:
        raise OperaTimeoutError(
            f"Request timeout for {method} {httpx.URL(url).path}",
            endpoint=httpx.URL(url).path,
        ) from e
