"""Run a one-shot shell command and capture its result."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import CommandTimeoutError, VerificationFailedError
from .process_supervisor import merge_environment
from .process_supervisor_helpers import collect_descendants, signal_descendants

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT_MS = 60000


@dataclass(frozen=True)
class RunResult:
    """Captured outcome of a finished command"""

    exit_code: int
    stdout: str
    stderr: str


async def run_command(
    command: str,
    *,
    env: Optional[Mapping[str, str]] = None,
    timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS,
) -> RunResult:
    """
    Run *command* through the shell with a hard timeout.

    A non-zero exit is not an error here; callers inspect ``exit_code``.
    Termination by a signal is reported as exit code 1.
    If the awaiting task is cancelled, the command and its descendants are
    killed and reaped before the cancellation propagates.

    Raises:
        CommandTimeoutError: If the command did not finish within *timeout_ms*
        VerificationFailedError: If the command could not be started
    """
    logger.debug("Running command: %s", command)
    if env:
        logger.debug("Environment variables: %s", dict(env))

    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=merge_environment(env),
        )
    except OSError as exc:
        raise VerificationFailedError(f"Command could not be started: {exc}", command=command) from exc

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError as exc:
        logger.error("Command timed out after %sms", timeout_ms)
        await _kill_command(process)
        raise CommandTimeoutError(command, timeout_ms) from exc
    except asyncio.CancelledError:
        logger.debug("Command cancelled, killing process %s", process.pid)
        await _kill_command(process)
        raise

    exit_code = _normalize_exit_code(process.returncode)
    result = RunResult(
        exit_code=exit_code,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )

    if result.stdout.strip():
        logger.debug("Command stdout: %s", result.stdout.strip())
    if result.stderr.strip():
        logger.debug("Command stderr: %s", result.stderr.strip())
    if exit_code != 0:
        logger.error("Command failed with exit code %s", exit_code)
    else:
        logger.debug("Command completed successfully with exit code %s", exit_code)
    return result


async def _kill_command(process: asyncio.subprocess.Process) -> None:
    """SIGKILL the command and everything it spawned, then reap it."""
    descendants = collect_descendants(process.pid)
    try:
        process.kill()
    except ProcessLookupError:  # Expected exception, process race condition  # policy_guard: allow-silent-handler
        logger.debug("Command exited before it could be killed")
    signal_descendants(descendants, force=True)
    await process.wait()


def _normalize_exit_code(returncode: Optional[int]) -> int:
    if returncode is None or returncode < 0:
        return 1
    return returncode


__all__ = ["DEFAULT_COMMAND_TIMEOUT_MS", "RunResult", "run_command"]
