"""
Process supervisor: launches a server command and watches its startup.

Usage:
    supervisor = ProcessSupervisor(stall_timeout_ms=30000)
    handle = await supervisor.launch("npm run dev", env={"PORT": "3000"})
    ...
    handle.mark_startup_completed()
    await handle.kill()
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Dict, List, Mapping, Optional, Sequence

from .exceptions import SpawnError
from .process_supervisor_helpers import (
    DEFAULT_TICK_INTERVAL_MS,
    GRACEFUL_SHUTDOWN_TIMEOUT_MS,
    ChunkSink,
    SignalGuard,
)
from .server_handle import ExitCallback, ServerHandle, StartupErrorCallback
from .startup_state import ErrorPattern
from .startup_state_helpers import DEFAULT_ERROR_PATTERNS

logger = logging.getLogger(__name__)

DEFAULT_STALL_TIMEOUT_MS = 30000


def split_command(command: str, args: Sequence[str] = ()) -> List[str]:
    """Whitespace-split *command* and append *args*; no shell quoting is honoured."""
    parts = command.split()
    if not parts:
        raise SpawnError(command, "Server command is empty")
    return [*parts, *args]


def merge_environment(env: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Current process environment with *env* layered on top."""
    merged = dict(os.environ)
    if env:
        merged.update(env)
    return merged


class ProcessSupervisor:
    """
    Single responsibility: start server processes and hand back supervised handles.

    Each launched process gets its own :class:`ServerHandle` carrying the
    startup monitor, output capture and teardown. Signal handlers are shared
    through one :class:`SignalGuard` and only stay installed while at least one
    handle is alive.
    """

    def __init__(
        self,
        *,
        stall_timeout_ms: int = DEFAULT_STALL_TIMEOUT_MS,
        error_patterns: Sequence[ErrorPattern] = DEFAULT_ERROR_PATTERNS,
        on_stdout: Optional[ChunkSink] = None,
        on_stderr: Optional[ChunkSink] = None,
        on_exit: Optional[ExitCallback] = None,
        on_startup_error: Optional[StartupErrorCallback] = None,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        kill_grace_ms: int = GRACEFUL_SHUTDOWN_TIMEOUT_MS,
        install_signal_handlers: bool = True,
    ):
        self.stall_timeout_ms = stall_timeout_ms
        self.error_patterns = tuple(error_patterns)
        self.on_stdout = on_stdout
        self.on_stderr = on_stderr
        self.on_exit = on_exit
        self.on_startup_error = on_startup_error
        self.tick_interval_ms = tick_interval_ms
        self.kill_grace_ms = kill_grace_ms
        self.signal_guard: Optional[SignalGuard] = SignalGuard() if install_signal_handlers else None

    async def launch(
        self,
        command: str,
        args: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
    ) -> ServerHandle:
        """
        Spawn *command* and start supervising it.

        Args:
            command: Server start command, split on whitespace
            args: Extra arguments appended after the split command
            env: Variables layered over the current environment

        Returns:
            ServerHandle for the running process

        Raises:
            SpawnError: If the process could not be started
        """
        argv = split_command(command, args)
        logger.debug("Launching server: %s", " ".join(argv))
        if env:
            logger.debug("Environment variables: %s", env)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=merge_environment(env),
                start_new_session=not sys.platform.startswith("win"),
            )
        except (OSError, ValueError) as exc:
            logger.error("Server process spawn error: %s", exc)
            raise SpawnError(command, f"Error launching server: {exc}") from exc

        handle = ServerHandle(
            process,
            command=command,
            stall_timeout_ms=self.stall_timeout_ms,
            error_patterns=self.error_patterns,
            tick_interval_ms=self.tick_interval_ms,
            kill_grace_ms=self.kill_grace_ms,
            on_stdout=self.on_stdout,
            on_stderr=self.on_stderr,
            on_exit=self.on_exit,
            on_startup_error=self.on_startup_error,
            signal_guard=self.signal_guard,
        )
        handle.start()

        logger.info("Server process launched successfully (PID %s)", handle.pid)
        return handle


__all__ = [
    "DEFAULT_STALL_TIMEOUT_MS",
    "ProcessSupervisor",
    "ServerHandle",
    "merge_environment",
    "split_command",
]
