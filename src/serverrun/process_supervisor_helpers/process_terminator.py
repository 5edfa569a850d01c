"""Escalating termination of a server process and its descendants."""

import asyncio
import logging
from typing import List

import psutil

from ..exceptions import KillError

logger = logging.getLogger(__name__)

# Process termination timeouts
GRACEFUL_SHUTDOWN_TIMEOUT_MS = 5000
FORCE_KILL_TIMEOUT_SECONDS = 2

PSUTIL_ERRORS = (psutil.NoSuchProcess, psutil.AccessDenied)


def collect_descendants(pid: int) -> List[psutil.Process]:
    """Return the live descendants of *pid*; empty when it is already gone."""
    try:
        return psutil.Process(pid).children(recursive=True)
    except PSUTIL_ERRORS:  # Expected exception, returning default value  # policy_guard: allow-silent-handler
        logger.debug("Could not inspect descendants of process %s", pid)
        return []


def signal_descendants(descendants: List[psutil.Process], *, force: bool) -> None:
    """Send SIGTERM (or SIGKILL when *force*) to every descendant still alive."""
    for proc in descendants:
        try:
            if force:
                proc.kill()
            else:
                proc.terminate()
        except psutil.NoSuchProcess:  # Expected exception, process race condition  # policy_guard: allow-silent-handler
            continue
        except psutil.AccessDenied:  # policy_guard: allow-silent-handler
            logger.warning("Access denied while signalling descendant process %s", proc.pid)


async def terminate_process(
    process: asyncio.subprocess.Process,
    *,
    graceful_timeout_ms: int = GRACEFUL_SHUTDOWN_TIMEOUT_MS,
    force_timeout_seconds: float = FORCE_KILL_TIMEOUT_SECONDS,
) -> None:
    """
    Terminate *process* gracefully, then force kill it if needed.

    A graceful termination signal goes out first. If the process has not exited
    within *graceful_timeout_ms* it receives SIGKILL, and so does every
    descendant that was alive when termination started.

    Raises:
        KillError: If a signal cannot be delivered or the process persists
            after the forced kill
    """
    pid = process.pid
    descendants = collect_descendants(pid)

    if not _send_signal(process, force=False):
        return
    signal_descendants(descendants, force=False)

    try:
        await asyncio.wait_for(process.wait(), timeout=graceful_timeout_ms / 1000)
    except asyncio.TimeoutError:  # Expected exception in operation  # policy_guard: allow-silent-handler
        logger.debug("Server process %s did not exit within %sms, force killing", pid, graceful_timeout_ms)
    else:
        logger.debug("Server process %s terminated gracefully", pid)
        return

    if not _send_signal(process, force=True):
        return
    signal_descendants(descendants, force=True)

    try:
        await asyncio.wait_for(process.wait(), timeout=force_timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise KillError(f"Server process {pid} persisted after SIGKILL for {force_timeout_seconds}s", pid=pid) from exc
    logger.debug("Server process %s force killed", pid)


def _send_signal(process: asyncio.subprocess.Process, *, force: bool) -> bool:
    """Signal *process*; False when it had already exited."""
    try:
        if force:
            process.kill()
        else:
            process.terminate()
    except ProcessLookupError:  # Expected exception, process race condition  # policy_guard: allow-silent-handler
        logger.debug("Server process %s already exited", process.pid)
        return False
    except OSError as exc:
        action = "force kill" if force else "kill"
        raise KillError(f"Failed to {action} server process: {exc}", pid=process.pid) from exc
    return True
