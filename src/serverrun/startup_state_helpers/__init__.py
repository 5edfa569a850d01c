"""Helper modules for startup state classification."""

from .error_patterns import DEFAULT_ERROR_PATTERNS

__all__ = ["DEFAULT_ERROR_PATTERNS"]
