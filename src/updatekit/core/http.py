"""HTTP client for remote package registries."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import requests
from requests import Response

from updatekit.core.errors import RequestError, SerializationError
from updatekit.core.logging import get_logger

log = get_logger(__name__)

VERSION = "0.1.0"
# crates.io rejects requests without a descriptive user agent.
USER_AGENT = f"updatekit/{VERSION} (multi-backend package updater)"
DEFAULT_TIMEOUT = 15.0


def _session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
    return session


def _get(url: str, params: dict[str, Any] | None, timeout: float) -> Response:
    with _session() as session:
        return session.get(url, params=params, timeout=timeout)


async def get_json(
    url: str, params: dict[str, Any] | None = None, timeout: float = DEFAULT_TIMEOUT
) -> tuple[int, Any]:
    """Fetch a JSON document without blocking the event loop.

    Args:
        url: Absolute URL to request.
        params: Optional query parameters; values are URL-escaped.
        timeout: Request timeout in seconds.

    Returns:
        A tuple of (status_code, payload). The payload is None when the
        server answers with a non-success status.

    Raises:
        RequestError: On transport failures (DNS, connection, timeout).
        SerializationError: If a success response body is not valid JSON.
    """
    start = time.perf_counter()
    try:
        response = await asyncio.to_thread(_get, url, params, timeout)
    except requests.RequestException as e:
        log.error("http_request_failed", url=url, error=str(e))
        raise RequestError(url=url, error=str(e)) from e

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info(
        "http_request_complete",
        url=url,
        status=response.status_code,
        duration_ms=duration_ms
    )

    if not response.ok:
        return response.status_code, None

    try:
        return response.status_code, response.json()
    except ValueError as e:
        raise SerializationError(
            f"Invalid JSON from {url}: {e}",
            context={"url": url, "output_preview": response.text[:200]}
        ) from e
