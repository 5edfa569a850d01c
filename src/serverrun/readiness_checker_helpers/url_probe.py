"""HTTP GET probe."""

import asyncio
import logging
from urllib.parse import urlsplit

import aiohttp
from aiohttp import ClientError, ClientTimeout

from ..exceptions import ReadinessCheckError
from .types import CheckResult

logger = logging.getLogger(__name__)

_MIN_SUCCESS_STATUS = 200
_MAX_SUCCESS_STATUS = 399


async def probe_url(url: str, timeout_ms: int) -> CheckResult:
    """
    Issue a GET against *url* with a hard total timeout.

    Statuses 200-399 count as available. Any other status, connection failure
    or timeout is "not available". Only an unusable URL is an error result.
    """
    try:
        ensure_http_url(url)
    except ValueError as exc:
        logger.error("Unexpected error checking URL %s: %s", url, exc)
        return CheckResult.failure(ReadinessCheckError(f"Unexpected error checking URL: {exc}", url=url))

    timeout = ClientTimeout(total=timeout_ms / 1000)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, allow_redirects=False) as response:
                status = response.status
    except aiohttp.InvalidURL as exc:
        logger.error("Unexpected error checking URL %s: %s", url, exc)
        return CheckResult.failure(ReadinessCheckError(f"Unexpected error checking URL: {exc}", url=url))
    except asyncio.TimeoutError:  # Transient network/connection failure  # policy_guard: allow-silent-handler
        logger.debug("Request to %s timed out after %sms", url, timeout_ms)
        return CheckResult.of(False)
    except (ClientError, OSError) as exc:  # Transient network/connection failure  # policy_guard: allow-silent-handler
        logger.debug("Error checking URL %s: %s", url, exc)
        return CheckResult.of(False)

    available = _MIN_SUCCESS_STATUS <= status <= _MAX_SUCCESS_STATUS
    if available:
        logger.debug("URL %s is available (status: %s)", url, status)
    else:
        logger.debug("URL %s returned status code %s", url, status)
    return CheckResult.of(available)


def ensure_http_url(request_url: str) -> str:
    """Ensure the provided URL uses an allowed HTTP/HTTPS scheme."""
    parsed = urlsplit(request_url)
    scheme = parsed.scheme.lower()
    if scheme not in {"http", "https"}:
        raise ValueError(f"Unsupported URL scheme: {request_url}")
    if not parsed.netloc:
        raise ValueError(f"URL missing network location: {request_url}")
    return request_url
