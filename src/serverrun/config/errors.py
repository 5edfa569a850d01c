from __future__ import annotations

"""Exception types for option and environment configuration."""


class ConfigurationError(RuntimeError):
    """Raised when a command line option or environment override is unusable."""

    @classmethod
    def missing_option(cls, option: str, context: str = "") -> "ConfigurationError":
        """Create error for an absent or blank option."""
        msg = f"{option} is missing or empty"
        if context:
            msg += f": {context}"
        return cls(msg)

    @classmethod
    def invalid_option(cls, option: str, value, reason: str = "") -> "ConfigurationError":
        """Create error for an option outside its accepted range."""
        msg = f"Invalid value for {option}: {value!r}"
        if reason:
            msg += f". {reason}"
        return cls(msg)

    @classmethod
    def invalid_environment(cls, name: str, raw: str, expected: str) -> "ConfigurationError":
        """Create error for an environment variable that cannot be coerced."""
        return cls(f"Environment variable {name!r} must be {expected} (got {raw!r})")

    @classmethod
    def load_failed(cls, resource: str, identifier: str = "") -> "ConfigurationError":
        """Create error for an unreadable configuration source."""
        msg = f"Failed to load {resource}"
        if identifier:
            msg += f" for {identifier}"
        return cls(msg)


__all__ = ["ConfigurationError"]
