"""Helper modules for ProcessSupervisor slim coordinator pattern."""

from .output_capture import ChunkSink, OutputBuffer, combine_output, pump_stream
from .process_terminator import (
    GRACEFUL_SHUTDOWN_TIMEOUT_MS,
    collect_descendants,
    signal_descendants,
    terminate_process,
)
from .signal_guard import HANDLED_SIGNALS, SignalGuard
from .startup_monitor import DEFAULT_TICK_INTERVAL_MS, StartupMonitor

__all__ = [
    "ChunkSink",
    "DEFAULT_TICK_INTERVAL_MS",
    "GRACEFUL_SHUTDOWN_TIMEOUT_MS",
    "HANDLED_SIGNALS",
    "OutputBuffer",
    "SignalGuard",
    "StartupMonitor",
    "collect_descendants",
    "combine_output",
    "pump_stream",
    "signal_descendants",
    "terminate_process",
]
