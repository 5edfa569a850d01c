"""Readiness stage: URL check first, port check as fallback."""

import logging
from typing import Optional

from ..exceptions import ReadinessCheckError, ReadinessTimeoutError
from ..readiness_checker import wait_for_target
from ..readiness_checker_helpers import PortTarget, ReadinessTarget, UrlTarget

logger = logging.getLogger(__name__)


def readiness_url(port: Optional[int], url: Optional[str]) -> Optional[str]:
    """URL to poll: the explicit one, else the local root of *port*."""
    if url:
        return url
    if port is not None:
        return f"http://localhost:{port}"
    return None


async def await_readiness(
    *,
    port: Optional[int],
    url: Optional[str],
    timeout_ms: int,
    interval_ms: int,
) -> ReadinessTarget:
    """
    Wait until the server answers on its URL, or has bound its port.

    The URL check is preferred. The port check is only used when the URL check
    itself errors (e.g. an unusable URL), not when it merely times out.

    Returns:
        The target that confirmed readiness

    Raises:
        ReadinessTimeoutError: If the chosen check never succeeded
        ReadinessCheckError: If no check could be performed
    """
    target_url = readiness_url(port, url)
    if target_url is None:
        raise ReadinessCheckError("Port or URL is required for readiness checks")

    url_target = UrlTarget(target_url)
    logger.info("Waiting for URL %s to become available...", target_url)
    result = await wait_for_target(url_target, timeout_ms=timeout_ms, interval_ms=interval_ms)

    if not result.failed:
        if not result.available:
            logger.error("Timed out waiting for URL %s to become available.", target_url)
            raise ReadinessTimeoutError(f"URL {target_url}", timeout_ms)
        logger.info("URL %s is now available.", target_url)
        return url_target

    if port is None:
        logger.error("Error waiting for URL: %s", result.error)
        raise result.error

    logger.info("URL check failed: %s, falling back to port check", result.error)
    port_target = PortTarget(port)
    logger.info("Waiting for port %s to become unavailable...", port)
    result = await wait_for_target(port_target, timeout_ms=timeout_ms, interval_ms=interval_ms)

    if result.failed:
        logger.error("Error waiting for port: %s", result.error)
        raise result.error
    if not result.available:
        logger.error("Timed out waiting for port %s to become unavailable.", port)
        raise ReadinessTimeoutError(f"port {port}", timeout_ms)

    logger.info("Port %s is now in use by the server.", port)
    return port_target
