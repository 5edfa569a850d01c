"""
Handle for one supervised server process.

The handle owns every piece of mutable state shared by the asynchronous
activities of a launched server (output pumps, the startup monitor, the exit
watcher, teardown): the two output buffers, ``startup_completed`` and
``killed``. All of them run on one event loop, so plain attributes suffice.

Outcomes are published as futures rather than ad hoc callbacks so callers can
select over them:

- ``startup_failure`` resolves (at most once) with the StartupFailedError that
  ended startup
- ``exited`` resolves with the process return code
- ``interrupted`` resolves with 0 or 1 after a signal-driven kill
"""

from __future__ import annotations

import asyncio
import functools
import logging
import signal
import time
from typing import Callable, Dict, List, Optional, Sequence, Set

from .exceptions import KillError, StartupFailedError, StartupStalledError
from .process_supervisor_helpers import (
    DEFAULT_TICK_INTERVAL_MS,
    GRACEFUL_SHUTDOWN_TIMEOUT_MS,
    ChunkSink,
    OutputBuffer,
    SignalGuard,
    StartupMonitor,
    combine_output,
    pump_stream,
    terminate_process,
)
from .startup_state import ErrorPattern, StartupPhase, StartupState, match_error_pattern

logger = logging.getLogger(__name__)

ExitCallback = Callable[[int], None]
StartupErrorCallback = Callable[[StartupFailedError], None]

# Upper bound for draining the pipes once the process has exited
_OUTPUT_DRAIN_TIMEOUT_SECONDS = 1.0

# Earlier output rescanned with each chunk so a match split across reads is caught
_PATTERN_OVERLAP_CHARS = 512


class ServerHandle:
    """A launched server process and its supervision state."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        *,
        command: str,
        stall_timeout_ms: int,
        error_patterns: Sequence[ErrorPattern],
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        kill_grace_ms: int = GRACEFUL_SHUTDOWN_TIMEOUT_MS,
        on_stdout: Optional[ChunkSink] = None,
        on_stderr: Optional[ChunkSink] = None,
        on_exit: Optional[ExitCallback] = None,
        on_startup_error: Optional[StartupErrorCallback] = None,
        signal_guard: Optional[SignalGuard] = None,
    ) -> None:
        loop = asyncio.get_running_loop()
        self.process = process
        self.pid = process.pid
        self.command = command
        self.error_patterns = tuple(error_patterns)
        self.kill_grace_ms = kill_grace_ms
        self.start_time = time.monotonic()
        self.killed = False

        self._stdout = OutputBuffer()
        self._stderr = OutputBuffer()
        self._startup_completed = False
        self._on_stdout = on_stdout
        self._on_stderr = on_stderr
        self._on_exit = on_exit
        self._on_startup_error = on_startup_error
        self._signal_guard = signal_guard
        self._pattern_tails: Dict[str, str] = {}

        self.startup_failure: asyncio.Future[StartupFailedError] = loop.create_future()
        self.exited: asyncio.Future[int] = loop.create_future()
        self.interrupted: asyncio.Future[int] = loop.create_future()

        self._monitor = StartupMonitor(
            output_provider=self.combined_output,
            is_completed=lambda: self._startup_completed,
            on_terminal_state=self._on_terminal_state,
            start_time=self.start_time,
            stall_timeout_ms=stall_timeout_ms,
            error_patterns=self.error_patterns,
            tick_interval_ms=tick_interval_ms,
        )
        self._pump_tasks: List[asyncio.Task] = []
        self._exit_task: Optional[asyncio.Task] = None
        self._kill_task: Optional[asyncio.Task] = None
        self._signal_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def stdout_buffer(self) -> str:
        return self._stdout.text

    @property
    def stderr_buffer(self) -> str:
        return self._stderr.text

    @property
    def startup_completed(self) -> bool:
        return self._startup_completed

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def is_monitoring(self) -> bool:
        return self._monitor.is_running()

    def combined_output(self) -> str:
        return combine_output(self._stdout.text, self._stderr.text)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Wire output capture, the startup monitor, exit watching and signals."""
        if self.process.stdout is not None:
            self._pump_tasks.append(
                asyncio.create_task(
                    pump_stream(
                        self.process.stdout,
                        self._stdout,
                        label="stdout",
                        sink=self._on_stdout,
                        listener=functools.partial(self._on_output, "stdout"),
                    )
                )
            )
        if self.process.stderr is not None:
            self._pump_tasks.append(
                asyncio.create_task(
                    pump_stream(
                        self.process.stderr,
                        self._stderr,
                        label="stderr",
                        sink=self._on_stderr,
                        listener=functools.partial(self._on_output, "stderr"),
                    )
                )
            )
        self._monitor.start()
        self._exit_task = asyncio.create_task(self._watch_exit())
        if self._signal_guard is not None:
            self._signal_guard.register(self.pid, self._handle_signal)

    def mark_startup_completed(self) -> None:
        """Record that readiness was confirmed; startup errors are no longer reported."""
        self._startup_completed = True
        self._monitor.cancel()

    async def wait(self) -> int:
        """Wait for the process to exit and return its code."""
        return await asyncio.shield(self.exited)

    async def kill(self) -> None:
        """
        Tear the server down: SIGTERM, then SIGKILL after the grace period.

        Safe to call any number of times from any path; concurrent callers share
        a single termination sequence. Teardown is never reported as a startup
        failure.

        Raises:
            KillError: If the process could not be signalled or did not exit
        """
        self._startup_completed = True
        self._monitor.cancel()

        if self._kill_task is None:
            if self.process.returncode is not None:
                logger.debug("Server process is already stopped")
                self._release_signal_guard()
                return
            logger.debug("Killing server process %s", self.pid)
            self.killed = True
            self._kill_task = asyncio.create_task(self._terminate())

        await asyncio.shield(self._kill_task)

    async def _terminate(self) -> None:
        try:
            await terminate_process(self.process, graceful_timeout_ms=self.kill_grace_ms)
        except KillError:
            logger.error("Failed to kill server process %s", self.pid)
            raise
        finally:
            self._release_signal_guard()
        logger.debug("Server process killed successfully")

    # ------------------------------------------------------------------
    # Startup failure reporting
    # ------------------------------------------------------------------

    def _on_output(self, stream: str, text: str) -> None:
        """Check a fresh chunk, plus the tail of its stream, against the fatal patterns."""
        if self._startup_completed:
            return
        window = self._pattern_tails.get(stream, "") + text
        self._pattern_tails[stream] = window[-_PATTERN_OVERLAP_CHARS:]
        matched = match_error_pattern(window, self.error_patterns)
        if matched is not None:
            self._on_terminal_state(
                StartupState.failed(matched.description, matched.pattern.pattern),
                self.combined_output(),
            )

    def _on_terminal_state(self, state: StartupState, output: str) -> None:
        if state.phase is StartupPhase.STALLED:
            logger.error("Server startup stalled: %s", state.reason)
            error: StartupFailedError = StartupStalledError(f"Server startup stalled: {state.reason}", output=output)
        else:
            logger.error("Server startup error detected: %s", state.reason)
            error = StartupFailedError(f"Server startup error: {state.reason}", output=output)
        self._report_startup_failure(error)

    def _report_startup_failure(self, error: StartupFailedError) -> None:
        """Publish *error* unless startup already completed; at most once per handle."""
        if self._startup_completed:
            return
        self._startup_completed = True
        self._monitor.cancel()

        if not self.startup_failure.done():
            self.startup_failure.set_result(error)
        if self._on_startup_error is not None:
            self._on_startup_error(error)

    async def _watch_exit(self) -> None:
        returncode = await self.process.wait()
        if self._pump_tasks:
            await asyncio.wait(self._pump_tasks, timeout=_OUTPUT_DRAIN_TIMEOUT_SECONDS)
        self._monitor.cancel()
        logger.debug("Server process exited with code %s", returncode)

        reported = False
        if not self._startup_completed and returncode != 0:
            self._report_startup_failure(
                StartupFailedError(
                    f"Server process exited with code {returncode} during startup",
                    output=self.combined_output(),
                    server_exit_code=returncode,
                )
            )
            reported = True

        if not self.exited.done():
            self.exited.set_result(returncode)
        if not reported and self._on_exit is not None:
            self._on_exit(returncode)
        if self._kill_task is None:
            self._release_signal_guard()

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _handle_signal(self, signum: signal.Signals) -> None:
        if self.interrupted.done():
            return
        task = asyncio.create_task(self._kill_on_signal(signum))
        self._signal_tasks.add(task)
        task.add_done_callback(self._signal_tasks.discard)

    async def _kill_on_signal(self, signum: signal.Signals) -> None:
        logger.info("Received %s, killing server process", signum.name)
        try:
            await self.kill()
        except KillError as exc:  # policy_guard: allow-silent-handler
            logger.error("Error killing server process: %s", exc)
            code = 1
        else:
            code = 0
        if not self.interrupted.done():
            self.interrupted.set_result(code)

    def _release_signal_guard(self) -> None:
        if self._signal_guard is not None:
            self._signal_guard.unregister(self.pid)
