"""Periodic startup classification for a supervised server."""

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

from ..startup_state import ErrorPattern, StartupState, classify

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_MS = 1000

TerminalStateHandler = Callable[[StartupState, str], None]


class StartupMonitor:
    """Runs the startup classifier on a fixed interval until a terminal state.

    The loop re-checks ``is_completed`` on every tick even though
    :meth:`cancel` is called the moment startup completes.
    """

    def __init__(
        self,
        *,
        output_provider: Callable[[], str],
        is_completed: Callable[[], bool],
        on_terminal_state: TerminalStateHandler,
        start_time: float,
        stall_timeout_ms: int,
        error_patterns: Sequence[ErrorPattern],
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
    ):
        self.output_provider = output_provider
        self.is_completed = is_completed
        self.on_terminal_state = on_terminal_state
        self.start_time = start_time
        self.stall_timeout_ms = stall_timeout_ms
        self.error_patterns = tuple(error_patterns)
        self.tick_interval_ms = tick_interval_ms
        self.monitor_task: Optional[asyncio.Task] = None

    def start(self) -> None:
        """Start the classification loop."""
        if self.monitor_task is not None:
            logger.warning("Startup monitor already started")
            return
        self.monitor_task = asyncio.create_task(self._monitor_loop())

    def cancel(self) -> None:
        """Stop the classification loop; safe to call from inside a tick."""
        task = self.monitor_task
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            return
        task.cancel()

    def is_running(self) -> bool:
        return self.monitor_task is not None and not self.monitor_task.done()

    def tick(self, previous_output: str) -> tuple[StartupState, str]:
        """Classify the current output against *previous_output*."""
        output = self.output_provider()
        elapsed_ms = (time.monotonic() - self.start_time) * 1000
        state = classify(output, previous_output, elapsed_ms, self.stall_timeout_ms, self.error_patterns)
        return state, output

    async def _monitor_loop(self) -> None:
        previous_output = ""
        tick_seconds = self.tick_interval_ms / 1000

        while True:
            await asyncio.sleep(tick_seconds)
            if self.is_completed():
                return

            state, previous_output = self.tick(previous_output)
            if state.is_terminal:
                self.on_terminal_state(state, previous_output)
                return

            logger.debug("Server is still starting up")
