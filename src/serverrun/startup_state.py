"""
Startup state classification for a freshly launched server.

Single responsibility: decide from captured output and elapsed time whether a
server is still starting, has stalled, or has printed a known fatal error.
Everything here is pure so the supervisor can call it on every tick.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Pattern, Sequence


class StartupPhase(Enum):
    """Startup classification outcome"""

    STARTING = "starting"
    STALLED = "stalled"
    FAILED = "failed"


@dataclass(frozen=True)
class ErrorPattern:
    """Fatal output pattern and the human readable reason reported for it."""

    pattern: Pattern[str]
    description: str

    @classmethod
    def compile(cls, regex: str, description: str, flags: int = re.IGNORECASE) -> "ErrorPattern":
        return cls(pattern=re.compile(regex, flags), description=description)

    def matches(self, output: str) -> bool:
        return self.pattern.search(output) is not None


@dataclass(frozen=True)
class StartupState:
    """Result of a single classification tick"""

    phase: StartupPhase
    reason: Optional[str] = None
    matched_pattern: Optional[str] = None

    @classmethod
    def starting(cls) -> "StartupState":
        return cls(phase=StartupPhase.STARTING)

    @classmethod
    def stalled(cls, reason: str) -> "StartupState":
        return cls(phase=StartupPhase.STALLED, reason=reason)

    @classmethod
    def failed(cls, reason: str, matched_pattern: Optional[str] = None) -> "StartupState":
        return cls(phase=StartupPhase.FAILED, reason=reason, matched_pattern=matched_pattern)

    @property
    def is_terminal(self) -> bool:
        return self.phase is not StartupPhase.STARTING


def match_error_pattern(output: str, error_patterns: Sequence[ErrorPattern]) -> Optional[ErrorPattern]:
    """Return the first pattern, in caller order, that matches *output*."""
    for error_pattern in error_patterns:
        if error_pattern.matches(output):
            return error_pattern
    return None


def classify(
    output: str,
    previous_output: str,
    elapsed_ms: float,
    stall_timeout_ms: float,
    error_patterns: Sequence[ErrorPattern],
) -> StartupState:
    """
    Classify the startup state of a server from its accumulated output.

    A matched fatal pattern always wins, even past the stall threshold. A stall
    requires both ``elapsed_ms > stall_timeout_ms`` and no output growth since
    the previous tick; empty output alone never counts as a stall.

    Args:
        output: Combined output captured since launch
        previous_output: Combined output captured at the previous tick
        elapsed_ms: Milliseconds since launch
        stall_timeout_ms: Threshold after which unchanged output means stalled
        error_patterns: Ordered fatal-error patterns

    Returns:
        StartupState for this tick
    """
    matched = match_error_pattern(output, error_patterns)
    if matched is not None:
        return StartupState.failed(matched.description, matched.pattern.pattern)

    if elapsed_ms > stall_timeout_ms and output == previous_output:
        return StartupState.stalled(f"no output growth for {int(elapsed_ms)} ms")

    return StartupState.starting()


__all__ = [
    "ErrorPattern",
    "StartupPhase",
    "StartupState",
    "classify",
    "match_error_pattern",
]
