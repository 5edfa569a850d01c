"""Helper modules for the readiness checker."""

from .poll_loop import PollFunction, wait_for_condition
from .port_probe import probe_port
from .types import CheckResult, PortTarget, ReadinessTarget, UrlTarget
from .url_probe import ensure_http_url, probe_url

__all__ = [
    "CheckResult",
    "PollFunction",
    "PortTarget",
    "ReadinessTarget",
    "UrlTarget",
    "ensure_http_url",
    "probe_port",
    "probe_url",
    "wait_for_condition",
]
