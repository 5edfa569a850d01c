"""TCP bind probe."""

import errno
import logging
import socket
import sys
from typing import List, Tuple

from ..exceptions import ReadinessCheckError
from .types import CheckResult

logger = logging.getLogger(__name__)

# A resolved address family the host cannot bind at all (e.g. IPv6 disabled)
_UNUSABLE_ADDRESS_ERRORS = frozenset({errno.EADDRNOTAVAIL, errno.EAFNOSUPPORT})

SocketAddress = Tuple[int, tuple]


def resolve_bind_addresses(host: str, port: int) -> List[SocketAddress]:
    """Distinct ``(family, sockaddr)`` pairs *host* resolves to, in resolver order."""
    addresses: List[SocketAddress] = []
    for family, _type, _proto, _canonname, sockaddr in socket.getaddrinfo(
        host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
    ):
        if family not in (socket.AF_INET, socket.AF_INET6):
            continue
        address = (family, sockaddr)
        if address not in addresses:
            addresses.append(address)
    return addresses


def _bind_once(family: int, sockaddr: tuple) -> None:
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if not sys.platform.startswith("win"):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if family == socket.AF_INET6:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        sock.bind(sockaddr)
        sock.listen(1)
    finally:
        sock.close()


def probe_port(port: int, host: str = "localhost") -> CheckResult:
    """
    Try to bind a transient listener on *port* and release it immediately.

    Every address *host* resolves to is tried, IPv4 and IPv6 alike, so a server
    listening only on ``::1`` still counts as occupying ``localhost``.

    Args:
        port: TCP port to probe
        host: Host name or address to bind on

    Returns:
        available=True when every usable address binds, available=False when
        any of them is in use, an error result for any other failure
    """
    try:
        addresses = resolve_bind_addresses(host, port)
    except OSError as exc:
        logger.error("Error resolving %s for port %s: %s", host, port, exc)
        return CheckResult.failure(ReadinessCheckError(f"Error checking port {port}: {exc}", port=port))

    bound = 0
    for family, sockaddr in addresses:
        try:
            _bind_once(family, sockaddr)
        except OSError as exc:  # Expected exception, returning default value  # policy_guard: allow-silent-handler
            if exc.errno == errno.EADDRINUSE:
                logger.debug("Port %s is already in use on %s", port, sockaddr[0])
                return CheckResult.of(False)
            if exc.errno in _UNUSABLE_ADDRESS_ERRORS:
                logger.debug("Skipping unusable address %s for port %s: %s", sockaddr[0], port, exc)
                continue
            logger.error("Error checking port %s: %s", port, exc)
            return CheckResult.failure(ReadinessCheckError(f"Error checking port {port}: {exc}", port=port))
        bound += 1

    if not bound:
        logger.error("No usable address for %s to check port %s", host, port)
        return CheckResult.failure(
            ReadinessCheckError(f"Error checking port {port}: no usable address for {host}", port=port)
        )

    logger.debug("Port %s is available", port)
    return CheckResult.of(True)
