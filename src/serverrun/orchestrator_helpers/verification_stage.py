"""Verification stage: run the caller's command against the live server."""

import logging
import sys
from typing import Mapping

from ..command_runner import RunResult, run_command
from ..exceptions import VerificationFailedError

logger = logging.getLogger(__name__)


async def run_verification(command: str, *, env: Mapping[str, str], timeout_ms: int) -> RunResult:
    """
    Run *command* with the server's environment and echo its output.

    Raises:
        VerificationFailedError: If the command exits non-zero (carrying that
            exit code), cannot be started, or times out
    """
    logger.info("Running command: %s", command)
    result = await run_command(command, env=env, timeout_ms=timeout_ms)

    logger.info("Command completed with exit code %s", result.exit_code)

    if result.stdout.strip():
        logger.info("Command stdout:")
        print(result.stdout, flush=True)

    if result.stderr.strip():
        logger.info("Command stderr:")
        print(result.stderr, file=sys.stderr, flush=True)

    if result.exit_code != 0:
        raise VerificationFailedError(
            f"Command failed with exit code {result.exit_code}",
            exit_code=result.exit_code,
            result=result,
        )
    return result
