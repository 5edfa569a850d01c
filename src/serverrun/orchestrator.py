"""
Run orchestrator: the top-level server-run sequence.

    PORT_PRECHECK -> LAUNCHING -> AWAITING_READINESS -> RUNNING_VERIFICATION
        -> TEARDOWN | KEPT_ALIVE

Every stage after launch is raced against the handle's startup failure and
signal futures, so a crash, a stall or Ctrl+C ends the run from whichever
stage it happens in. Failures are terminal: the server is killed (unless
keep-alive protects it from a failed verification) and the run exits non-zero.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from .env_spec import parse_env
from .exceptions import (
    KillError,
    PortUnavailableError,
    ServerRunError,
    StartupFailedError,
    VerificationFailedError,
)
from .orchestrator_helpers import await_readiness, run_verification
from .process_supervisor import ProcessSupervisor
from .process_supervisor_helpers import ChunkSink
from .readiness_checker import is_port_available
from .run_options import RunOptions
from .server_handle import ServerHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")

SupervisorFactory = Callable[..., ProcessSupervisor]


class RunState(Enum):
    """Orchestrator stage"""

    PENDING = "pending"
    PORT_PRECHECK = "port-precheck"
    LAUNCHING = "launching"
    AWAITING_READINESS = "awaiting-readiness"
    RUNNING_VERIFICATION = "running-verification"
    TEARDOWN = "teardown"
    KEPT_ALIVE = "kept-alive"
    FAILED = "failed"


class RunInterrupted(Exception):
    """Raised inside the orchestrator when a signal-driven kill ended the run."""

    def __init__(self, exit_code: int) -> None:
        super().__init__(f"Run interrupted (exit code {exit_code})")
        self.exit_code = exit_code


def forward_to(stream_name: str) -> ChunkSink:
    """Sink writing raw chunks to ``sys.stdout`` / ``sys.stderr``."""

    def sink(chunk: bytes) -> None:
        stream = getattr(sys, stream_name)
        buffer = getattr(stream, "buffer", None)
        if buffer is not None:
            buffer.write(chunk)
        else:
            stream.write(chunk.decode("utf-8", errors="replace"))
        stream.flush()

    return sink


class RunOrchestrator:
    """Drives one server run from port precheck to teardown."""

    def __init__(
        self,
        options: RunOptions,
        *,
        supervisor_factory: SupervisorFactory = ProcessSupervisor,
        on_stdout: Optional[ChunkSink] = None,
        on_stderr: Optional[ChunkSink] = None,
        install_signal_handlers: bool = True,
    ):
        self.options = options
        self.state = RunState.PENDING
        self.history = [RunState.PENDING]
        self.handle: Optional[ServerHandle] = None
        self.env: Dict[str, str] = {}

        if on_stdout is None and options.verbose:
            on_stdout = forward_to("stdout")
        if on_stderr is None:
            on_stderr = forward_to("stderr")

        self.supervisor = supervisor_factory(
            stall_timeout_ms=options.stall_timeout_ms,
            on_stdout=on_stdout,
            on_stderr=on_stderr,
            on_exit=self._on_server_exit,
            install_signal_handlers=install_signal_handlers,
        )

    async def run(self) -> int:
        """
        Execute the run.

        Returns:
            Process exit code: 0 on success or keep-alive, the verification
            command's code when it failed, the server's code when it crashed
            during startup, 1 otherwise
        """
        logger.info("Starting server-run command")
        try:
            return await self._run_stages()
        except RunInterrupted as exc:
            self._enter(RunState.FAILED)
            logger.info("Server run interrupted by signal")
            return exc.exit_code
        except ServerRunError as exc:
            return await self._fail(exc)

    async def hold(self) -> int:
        """Keep a kept-alive server attached until it exits or a signal arrives."""
        handle = self.handle
        if handle is None or self.state is not RunState.KEPT_ALIVE:
            return 0

        await asyncio.wait(
            {handle.exited, handle.interrupted, handle.startup_failure},
            return_when=asyncio.FIRST_COMPLETED,
        )
        if handle.interrupted.done():
            return handle.interrupted.result()
        if handle.startup_failure.done():
            return await self._fail(handle.startup_failure.result())

        returncode = handle.exited.result()
        logger.info("Server process exited with code %s", returncode)
        if returncode == 0:
            return 0
        return returncode if returncode > 0 else 1

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run_stages(self) -> int:
        options = self.options
        self._log_options()

        if options.env:
            self.env = parse_env(options.env)
            logger.debug("Environment variables: %s", self.env)

        if options.port is not None:
            await self._check_port(options.port)

        self.handle = await self._launch()

        if options.readiness_requested:
            await self._guard(self._await_readiness())

        if options.run_command:
            self._enter(RunState.RUNNING_VERIFICATION)
            await self._guard(
                run_verification(options.run_command, env=self.env, timeout_ms=options.timeout_ms)
            )

        return await self._teardown()

    async def _check_port(self, port: int) -> None:
        self._enter(RunState.PORT_PRECHECK)
        logger.info("Checking if port %s is available...", port)
        result = await is_port_available(port)
        if result.failed:
            logger.error("Error checking port availability: %s", result.error)
            raise result.error
        if not result.available:
            raise PortUnavailableError(port, f"Port {port} is already in use. Aborting.")
        logger.info("Port %s is available.", port)

    async def _launch(self) -> ServerHandle:
        self._enter(RunState.LAUNCHING)
        logger.info("Launching server...")
        handle = await self.supervisor.launch(self.options.command, env=self.env)
        logger.info("Server launched successfully")
        return handle

    async def _await_readiness(self) -> None:
        self._enter(RunState.AWAITING_READINESS)
        target = await await_readiness(
            port=self.options.port,
            url=self.options.url,
            timeout_ms=self.options.timeout_ms,
            interval_ms=self.options.interval_ms,
        )
        logger.info("Server is ready at %s.", target.describe())
        self.handle.mark_startup_completed()

    async def _teardown(self) -> int:
        if self.options.keep_alive:
            self._enter(RunState.KEPT_ALIVE)
            logger.info("Keeping server running. Press Ctrl+C to stop.")
            return 0

        self._enter(RunState.TEARDOWN)
        logger.info("Shutting down server...")
        try:
            await self.handle.kill()
        except KillError as exc:
            logger.error("Failed to shut down server: %s", exc)
            return exc.exit_code
        logger.info("Server shut down successfully")
        return 0

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    async def _guard(self, stage: Awaitable[T]) -> T:
        """Run *stage* unless the server fails to start or a signal arrives first."""
        handle = self.handle
        stage_task = asyncio.ensure_future(stage)
        watched: set[Any] = {stage_task, handle.startup_failure, handle.interrupted}
        await asyncio.wait(watched, return_when=asyncio.FIRST_COMPLETED)

        if not stage_task.done():
            stage_task.cancel()
            try:
                await stage_task
            except asyncio.CancelledError:  # Expected during stage cancellation  # policy_guard: allow-silent-handler
                logger.debug("%s stage cancelled", self.state.value)

        if handle.interrupted.done():
            raise RunInterrupted(handle.interrupted.result())
        if handle.startup_failure.done():
            raise handle.startup_failure.result()
        return stage_task.result()

    async def _fail(self, error: ServerRunError) -> int:
        failed_stage = self.state
        self._enter(RunState.FAILED)
        logger.error("Server run failed during %s: %s", failed_stage.value, error)

        if isinstance(error, StartupFailedError) and error.output.strip():
            logger.debug("Server output:")
            logger.debug(error.output)

        keep_server = self.options.keep_alive and isinstance(error, VerificationFailedError)
        if self.handle is not None and not keep_server:
            try:
                await self.handle.kill()
            except KillError as kill_exc:  # policy_guard: allow-silent-handler
                logger.error("Error killing server process: %s", kill_exc)
        return error.exit_code

    def _on_server_exit(self, returncode: int) -> None:
        handle = self.handle
        if handle is not None and handle.killed:
            return
        if returncode != 0:
            logger.error("Server process exited with code %s", returncode)
        else:
            logger.info("Server process exited")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enter(self, state: RunState) -> None:
        logger.debug("Run state: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _log_options(self) -> None:
        options = self.options
        logger.info("Server command: %s", options.command)
        if options.port is not None:
            logger.info("Port to check: %s", options.port)
        if options.url:
            logger.info("URL to poll: %s", options.url)
        logger.info("Timeout: %sms", options.timeout_ms)
        logger.info("Stall detection timeout: %sms", options.stall_timeout_ms)
        if options.wait and options.port is None and not options.url:
            logger.warning(
                "No port or URL specified for readiness check. "
                "The command will continue but won't wait for server readiness."
            )


__all__ = ["RunInterrupted", "RunOrchestrator", "RunState", "forward_to"]
