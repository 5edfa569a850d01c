from __future__ import annotations

"""Utilities for running the async supervisor with consistent shutdown handling."""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

from .logging_config import setup_logging

ServiceFactory = Callable[[], Coroutine[Any, Any, int]]


def run_async_service(
    factory: ServiceFactory,
    *,
    service_name: str,
    verbose: bool = False,
    logger_name: Optional[str] = None,
    configure_logging: bool = True,
    shutdown_message: Optional[str] = None,
) -> int:
    """Run an async entry point with consistent Ctrl+C handling.

    Args:
        factory: Callable returning the coroutine to execute; its result is the exit code.
        service_name: Identifier used for logging configuration.
        verbose: Enable DEBUG console output.
        logger_name: Optional logger name override.
        configure_logging: Whether to configure logging via ``setup_logging``.
        shutdown_message: Optional custom message when interrupted.

    Returns:
        The coroutine's exit code, or 1 when interrupted before it could finish.
    """

    if configure_logging:
        setup_logging(service_name, verbose=verbose)

    logger = logging.getLogger(logger_name or f"serverrun.{service_name}")

    try:
        return asyncio.run(factory())
    except KeyboardInterrupt:  # Expected exception in operation  # policy_guard: allow-silent-handler
        if shutdown_message:
            logger.info(shutdown_message)
        else:
            logger.info("%s interrupted by user", service_name)
        return 1


__all__ = ["ServiceFactory", "run_async_service"]
