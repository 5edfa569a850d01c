"""Helper modules for RunOrchestrator stages."""

from .readiness_stage import await_readiness, readiness_url
from .verification_stage import run_verification

__all__ = ["await_readiness", "readiness_url", "run_verification"]
