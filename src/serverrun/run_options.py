from __future__ import annotations

"""Options for a single server run and their environment-backed defaults."""

from dataclasses import dataclass
from typing import Any, Optional

from .config import ConfigurationError, env_milliseconds

DEFAULT_TIMEOUT_MS = 60000
DEFAULT_INTERVAL_MS = 1000
DEFAULT_STALL_TIMEOUT_MS = 30000

TIMEOUT_ENV = "SERVER_RUN_TIMEOUT_MS"
INTERVAL_ENV = "SERVER_RUN_INTERVAL_MS"
STALL_TIMEOUT_ENV = "SERVER_RUN_STALL_TIMEOUT_MS"

_MAX_PORT = 65535


def default_timeout_ms() -> int:
    return env_milliseconds(TIMEOUT_ENV, or_value=DEFAULT_TIMEOUT_MS)


def default_interval_ms() -> int:
    return env_milliseconds(INTERVAL_ENV, or_value=DEFAULT_INTERVAL_MS)


def default_stall_timeout_ms() -> int:
    return env_milliseconds(STALL_TIMEOUT_ENV, or_value=DEFAULT_STALL_TIMEOUT_MS)


@dataclass(frozen=True)
class RunOptions:
    """Everything the orchestrator needs to supervise one server run.

    ``timeout_ms`` bounds the network readiness wait (and the verification
    command); ``stall_timeout_ms`` bounds output-based startup detection. The
    two are independent.
    """

    command: str
    port: Optional[int] = None
    url: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    interval_ms: int = DEFAULT_INTERVAL_MS
    stall_timeout_ms: int = DEFAULT_STALL_TIMEOUT_MS
    wait: bool = True
    verbose: bool = False
    keep_alive: bool = False
    run_command: Optional[str] = None
    env: Optional[str] = None

    @classmethod
    def from_namespace(cls, namespace: Any) -> "RunOptions":
        """Build options from an ``argparse.Namespace`` and validate them."""
        options = cls(
            command=(namespace.command or "").strip(),
            port=namespace.port,
            url=namespace.url,
            timeout_ms=namespace.timeout,
            interval_ms=namespace.interval,
            stall_timeout_ms=namespace.stall_timeout,
            wait=namespace.wait,
            verbose=namespace.verbose,
            keep_alive=namespace.keep_alive,
            run_command=namespace.run_command,
            env=namespace.env,
        )
        return options.validate()

    @property
    def readiness_requested(self) -> bool:
        return self.wait and (self.port is not None or bool(self.url))

    def validate(self) -> "RunOptions":
        """
        Check option values.

        Returns:
            The options themselves, for chaining

        Raises:
            ConfigurationError: If a value is missing or out of range
        """
        if not self.command:
            raise ConfigurationError.missing_option("--command", "the server start command is required")
        if self.port is not None and not 0 < self.port <= _MAX_PORT:
            raise ConfigurationError.invalid_option("--port", self.port, f"Expected 1-{_MAX_PORT}")
        for name, value in (
            ("--timeout", self.timeout_ms),
            ("--interval", self.interval_ms),
            ("--stall-timeout", self.stall_timeout_ms),
        ):
            if value <= 0:
                raise ConfigurationError.invalid_option(name, value, "Expected a positive number of milliseconds")
        if self.run_command is not None and not self.run_command.strip():
            raise ConfigurationError.missing_option("--run-command")
        return self


__all__ = [
    "DEFAULT_INTERVAL_MS",
    "DEFAULT_STALL_TIMEOUT_MS",
    "DEFAULT_TIMEOUT_MS",
    "RunOptions",
    "default_interval_ms",
    "default_stall_timeout_ms",
    "default_timeout_ms",
]
