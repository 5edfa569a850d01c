"""Exception classes for the server supervisor.

Every terminal failure of a run maps onto one of these classes. They share the
``ApplicationError`` pattern used across the code base:

1. No-argument raise: raise KillError()
2. Contextual attributes: err = SpawnError(command="npm start"); raise err

``ServerRunError.exit_code`` is the process exit status the orchestrator reports
for the failure.
"""

from typing import Any, Optional


class ApplicationError(Exception):
    """Base exception for all application errors.

    Supports keyword arguments that are stored as attributes for debugging.
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = self.__class__.__doc__ or "Application error occurred"
        super().__init__(message)
        for key, value in kwargs.items():
            setattr(self, key, value)


class ServerRunError(ApplicationError):
    """Server run failed."""

    stage = "run"

    def __init__(self, message: str = "", *, exit_code: int = 1, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.exit_code = exit_code


class PortUnavailableError(ServerRunError):
    """Port is already in use."""

    stage = "port-precheck"

    def __init__(self, port: int, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = f"Port {port} is already in use"
        super().__init__(message, port=port, **kwargs)


class ReadinessCheckError(ServerRunError):
    """Readiness check could not be performed."""

    stage = "readiness"


class SpawnError(ServerRunError):
    """Server process could not be started."""

    stage = "launch"

    def __init__(self, command: str, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = f"Failed to launch server command: {command}"
        super().__init__(message, command=command, **kwargs)


class StartupFailedError(ServerRunError):
    """Server failed during startup."""

    stage = "startup"

    def __init__(
        self,
        message: str = "",
        *,
        output: str = "",
        server_exit_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        exit_code = server_exit_code if server_exit_code and server_exit_code > 0 else 1
        super().__init__(message, exit_code=exit_code, **kwargs)
        self.output = output
        self.server_exit_code = server_exit_code


class StartupStalledError(StartupFailedError):
    """Server startup stalled."""


class ReadinessTimeoutError(ServerRunError):
    """Timed out waiting for the server to become ready."""

    stage = "readiness"

    def __init__(self, target: str, timeout_ms: int, message: str = "", **kwargs: Any) -> None:
        if not message:
            message = f"Timed out after {timeout_ms}ms waiting for {target}"
        super().__init__(message, target=target, timeout_ms=timeout_ms, **kwargs)


class VerificationFailedError(ServerRunError):
    """Verification command failed."""

    stage = "verification"


class CommandTimeoutError(VerificationFailedError):
    """Verification command timed out."""

    def __init__(self, command: str, timeout_ms: int, **kwargs: Any) -> None:
        super().__init__(
            f"Command timed out after {timeout_ms}ms: {command}",
            command=command,
            timeout_ms=timeout_ms,
            **kwargs,
        )


class KillError(ServerRunError):
    """Server process could not be terminated."""

    stage = "teardown"


__all__ = [
    "ApplicationError",
    "CommandTimeoutError",
    "KillError",
    "PortUnavailableError",
    "ReadinessCheckError",
    "ReadinessTimeoutError",
    "ServerRunError",
    "SpawnError",
    "StartupFailedError",
    "StartupStalledError",
    "VerificationFailedError",
]
