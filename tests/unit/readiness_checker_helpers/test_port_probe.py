import errno
import socket
from unittest.mock import MagicMock, patch

import pytest

from serverrun.exceptions import ReadinessCheckError
from serverrun.readiness_checker_helpers import port_probe, probe_port


def test_probe_port_free(free_port):
    result = probe_port(free_port)
    assert result.available is True
    assert not result.failed


def test_probe_port_occupied(occupied_port):
    result = probe_port(occupied_port)
    assert result.available is False
    assert not result.failed


def test_probe_port_releases_listener(free_port):
    assert probe_port(free_port).available
    assert probe_port(free_port).available


def test_probe_port_other_bind_error_is_failure():
    sock = MagicMock()
    sock.bind.side_effect = OSError(errno.EACCES, "Permission denied")

    with patch.object(port_probe.socket, "socket", return_value=sock):
        result = probe_port(80)

    assert result.failed
    assert isinstance(result.error, ReadinessCheckError)
    assert "Permission denied" in str(result.error)
    sock.close.assert_called_once()


def _ipv6_loopback_listener():
    if not socket.has_ipv6:
        pytest.skip("IPv6 is not supported")
    sock = socket.socket(socket.AF_INET6, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        sock.bind(("::1", 0))
    except OSError as exc:
        sock.close()
        pytest.skip(f"IPv6 loopback unavailable: {exc}")
    sock.listen(1)
    return sock


def _loopback_pair(port):
    return [
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", port)),
        (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("::1", port, 0, 0)),
    ]


def test_probe_port_detects_ipv6_only_listener():
    listener = _ipv6_loopback_listener()
    try:
        port = listener.getsockname()[1]
        assert probe_port(port, host="::1").available is False
    finally:
        listener.close()


def test_probe_port_occupied_on_any_resolved_family():
    listener = _ipv6_loopback_listener()
    try:
        port = listener.getsockname()[1]
        with patch.object(port_probe.socket, "getaddrinfo", return_value=_loopback_pair(port)):
            result = probe_port(port)
    finally:
        listener.close()

    assert result.available is False
    assert not result.failed


def test_probe_port_skips_unusable_family(free_port):
    bind = MagicMock(side_effect=[None, OSError(errno.EADDRNOTAVAIL, "Cannot assign requested address")])
    with patch.object(port_probe.socket, "getaddrinfo", return_value=_loopback_pair(free_port)), patch.object(
        port_probe, "_bind_once", bind
    ):
        result = probe_port(free_port)

    assert result.available is True
    assert bind.call_count == 2


def test_probe_port_without_usable_address_is_failure():
    bind = MagicMock(side_effect=OSError(errno.EAFNOSUPPORT, "Address family not supported"))
    with patch.object(port_probe.socket, "getaddrinfo", return_value=_loopback_pair(3000)), patch.object(
        port_probe, "_bind_once", bind
    ):
        result = probe_port(3000)

    assert result.failed
    assert "no usable address" in str(result.error)


def test_probe_port_unresolvable_host_is_failure():
    with patch.object(port_probe.socket, "getaddrinfo", side_effect=socket.gaierror(-2, "Name or service not known")):
        result = probe_port(3000, host="no-such-host.invalid")

    assert result.failed
    assert "Name or service not known" in str(result.error)


def test_resolve_bind_addresses_deduplicates():
    duplicated = _loopback_pair(3000) + _loopback_pair(3000)
    with patch.object(port_probe.socket, "getaddrinfo", return_value=duplicated):
        addresses = port_probe.resolve_bind_addresses("localhost", 3000)

    assert addresses == [(socket.AF_INET, ("127.0.0.1", 3000)), (socket.AF_INET6, ("::1", 3000, 0, 0))]
