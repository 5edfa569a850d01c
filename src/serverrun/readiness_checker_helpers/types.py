"""Type definitions for readiness checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..exceptions import ReadinessCheckError


@dataclass(frozen=True)
class CheckResult:
    """Outcome of an availability check.

    ``error`` is set only when the check itself could not be performed; a dead
    or not-yet-listening server is ``available=False`` with no error.
    """

    available: bool = False
    error: Optional[ReadinessCheckError] = None

    @classmethod
    def of(cls, available: bool) -> "CheckResult":
        return cls(available=available)

    @classmethod
    def failure(cls, error: ReadinessCheckError) -> "CheckResult":
        return cls(available=False, error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class PortTarget:
    port: int
    host: str = "localhost"

    def describe(self) -> str:
        return f"port {self.port}"


@dataclass(frozen=True)
class UrlTarget:
    url: str

    def describe(self) -> str:
        return f"URL {self.url}"


ReadinessTarget = Union[PortTarget, UrlTarget]
