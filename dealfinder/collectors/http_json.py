import time
from typing import Any, Dict, Optional

import httpx

from dealfinder.core.exceptions import (
    DataExtractionError,
    FetchTimeoutError,
    HTTPError,
    NetworkError,
)
from dealfinder.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "Deal-Finder-Bot/1.0",
}


async def fetch(
    client: httpx.AsyncClient,
    url: str,
    source: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Response:
    """
    GET upstream, une seule tentative (pas de retry, le prochain run réessaiera).

    Raises:
        FetchTimeoutError, NetworkError: erreur de transport
        HTTPError: status non-2xx
    """
    logger.fetch_start(source, url)
    start = time.perf_counter()
    try:
        resp = await client.get(url, params=params, headers=headers or DEFAULT_HEADERS)
    except httpx.TimeoutException as e:
        raise FetchTimeoutError(f"Timeout: {e}", source=source, url=url) from e
    except httpx.TransportError as e:
        raise NetworkError(f"Connection error: {e}", source=source, url=url) from e

    duration_ms = (time.perf_counter() - start) * 1000
    if resp.status_code >= 400:
        body = resp.text[:300]
        raise HTTPError(f"Upstream error: {body}", status_code=resp.status_code, source=source, url=url)

    logger.fetch_success(source, url, duration_ms, size=len(resp.content))
    return resp


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    source: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """GET + décodage JSON."""
    resp = await fetch(client, url, source, params=params, headers=headers)
    try:
        return resp.json()
    except ValueError as e:
        raise DataExtractionError(f"Invalid JSON body: {e}", source=source, url=url) from e
