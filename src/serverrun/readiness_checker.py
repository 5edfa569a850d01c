"""
Network readiness checks: "is the port bound?" and "does the URL answer?".

Port and URL readiness complement each other. A server may bind its port
before its HTTP stack answers (the URL check is stricter) or may speak a
non-HTTP protocol (only the port check applies).

All functions return a :class:`CheckResult`; none of them raise for a server
that is simply not listening yet.
"""

import logging

from .readiness_checker_helpers import (
    CheckResult,
    PollFunction,
    PortTarget,
    ReadinessTarget,
    UrlTarget,
    probe_port,
    probe_url,
    wait_for_condition,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 60000
DEFAULT_INTERVAL_MS = 1000
DEFAULT_REQUEST_TIMEOUT_MS = 5000


async def is_port_available(port: int, host: str = "localhost") -> CheckResult:
    """Check whether *port* can be bound on *host* right now."""
    return probe_port(port, host)


async def is_url_available(url: str, timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS) -> CheckResult:
    """Check whether a GET against *url* answers with a 2xx or 3xx status."""
    logger.debug("Checking URL availability: %s", url)
    return await probe_url(url, timeout_ms)


async def wait_for_port(
    port: int,
    *,
    host: str = "localhost",
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> CheckResult:
    """Wait until *port* becomes free."""

    async def poll() -> CheckResult:
        return await is_port_available(port, host)

    result = await wait_for_condition(poll, timeout_ms=timeout_ms, interval_ms=interval_ms)
    if not result.available and not result.failed:
        logger.debug("Timed out waiting for port %s to become available", port)
    return result


async def wait_for_port_to_become_unavailable(
    port: int,
    *,
    host: str = "localhost",
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> CheckResult:
    """
    Wait until something is listening on *port*.

    The returned result is ``available=True`` once the port is occupied, which
    is how a server under test signals that it has bound its socket.
    """

    async def poll() -> CheckResult:
        result = await is_port_available(port, host)
        if result.failed:
            return result
        return CheckResult.of(not result.available)

    result = await wait_for_condition(poll, timeout_ms=timeout_ms, interval_ms=interval_ms)
    if not result.available and not result.failed:
        logger.debug("Timed out waiting for port %s to become unavailable", port)
    return result


async def wait_for_url(
    url: str,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> CheckResult:
    """Wait until *url* answers with a success status."""
    request_timeout_ms = min(DEFAULT_REQUEST_TIMEOUT_MS, interval_ms)

    async def poll() -> CheckResult:
        return await is_url_available(url, request_timeout_ms)

    result = await wait_for_condition(poll, timeout_ms=timeout_ms, interval_ms=interval_ms)
    if not result.available and not result.failed:
        logger.debug("Timed out waiting for URL %s to become available", url)
    return result


async def wait_for_target(
    target: ReadinessTarget,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> CheckResult:
    """Wait for a port to be occupied or a URL to answer, depending on *target*."""
    if isinstance(target, UrlTarget):
        return await wait_for_url(target.url, timeout_ms=timeout_ms, interval_ms=interval_ms)
    return await wait_for_port_to_become_unavailable(
        target.port, host=target.host, timeout_ms=timeout_ms, interval_ms=interval_ms
    )


__all__ = [
    "CheckResult",
    "PollFunction",
    "PortTarget",
    "ReadinessTarget",
    "UrlTarget",
    "is_port_available",
    "is_url_available",
    "wait_for_condition",
    "wait_for_port",
    "wait_for_port_to_become_unavailable",
    "wait_for_target",
    "wait_for_url",
]
