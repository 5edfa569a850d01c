"""Command line entry point for server-run."""

import argparse
import sys
from typing import List, Optional

from .config import ConfigurationError
from .orchestrator import RunOrchestrator
from .run_options import RunOptions, default_interval_ms, default_stall_timeout_ms, default_timeout_ms
from .service_runner import run_async_service

SERVICE_NAME = "server-run"


def build_parser() -> argparse.ArgumentParser:
    """Argument parser; duration defaults honour the SERVER_RUN_*_MS overrides."""
    timeout_ms = default_timeout_ms()
    interval_ms = default_interval_ms()
    stall_timeout_ms = default_stall_timeout_ms()

    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME,
        description="Start a server, wait until it is ready, optionally run a command against it, then shut it down",
    )
    parser.add_argument("-c", "--command", required=True, help="Command to start the server")
    parser.add_argument("-p", "--port", type=int, help="Port to check if server is running")
    parser.add_argument("-u", "--url", help="URL to poll until it responds")
    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=timeout_ms,
        help=f"Timeout in ms for readiness and the run command (default: {timeout_ms})",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=int,
        default=interval_ms,
        help=f"Polling interval in ms (default: {interval_ms})",
    )
    parser.add_argument(
        "--stall-timeout",
        type=int,
        default=stall_timeout_ms,
        help=f"Fail startup when output stops growing for this many ms (default: {stall_timeout_ms})",
    )
    parser.add_argument(
        "-w",
        "--wait",
        dest="wait",
        action="store_true",
        default=True,
        help="Wait for the port or URL to become ready (default)",
    )
    parser.add_argument("--no-wait", dest="wait", action="store_false", help="Do not wait for readiness")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show server stdout and debug logging")
    parser.add_argument(
        "-k",
        "--keep-alive",
        action="store_true",
        help="Keep the server running after readiness or the run command",
    )
    parser.add_argument("-r", "--run-command", help="Command to run once the server is ready")
    parser.add_argument("-e", "--env", help="Environment variables for the server, e.g. 'KEY1=value1,KEY2=value2'")
    return parser


async def run_server(options: RunOptions) -> int:
    """Run once; when keep-alive succeeded, stay attached until the server exits or a signal arrives."""
    orchestrator = RunOrchestrator(options)
    exit_code = await orchestrator.run()
    if exit_code == 0 and options.keep_alive:
        exit_code = await orchestrator.hold()
    return exit_code


def main(argv: Optional[List[str]] = None) -> None:
    """Parse arguments, run the supervisor and exit with its status."""
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        options = RunOptions.from_namespace(args)
    except ConfigurationError as exc:
        sys.stderr.write(f"{SERVICE_NAME}: {exc}\n")
        raise SystemExit(1) from exc

    exit_code = run_async_service(
        lambda: run_server(options),
        service_name=SERVICE_NAME,
        verbose=options.verbose,
        logger_name=__name__,
        shutdown_message="Server run interrupted by user",
    )
    raise SystemExit(exit_code)


__all__ = ["build_parser", "main", "run_server"]
