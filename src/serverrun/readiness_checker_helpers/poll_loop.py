"""Generic bounded poll loop."""

import asyncio
import logging
from typing import Awaitable, Callable

from .types import CheckResult

logger = logging.getLogger(__name__)

PollFunction = Callable[[], Awaitable[CheckResult]]


async def wait_for_condition(poll: PollFunction, *, timeout_ms: int, interval_ms: int) -> CheckResult:
    """
    Call *poll* immediately and then every *interval_ms* until it reports
    available or *timeout_ms* have elapsed since the loop started.

    Returns:
        available=True when the condition was met, available=False on timeout,
        or the error result produced by *poll*
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000
    interval_seconds = interval_ms / 1000

    while True:
        result = await poll()
        if result.failed:
            return result
        if result.available:
            return CheckResult.of(True)

        remaining = deadline - loop.time()
        if remaining <= 0:
            return CheckResult.of(False)
        await asyncio.sleep(min(interval_seconds, remaining))
