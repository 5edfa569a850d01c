from __future__ import annotations

"""Environment-backed configuration values.

Lookups consult the process environment first and then the first dotenv file
(``./.env``, then ``~/.server_run.env``) that declares the name. Dotenv files
are read once per process.
"""

import os
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "t", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "f", "no", "n", "off"}

_DOTENV_CANDIDATES = (Path(".env"), Path.home() / ".server_run.env")

_DEFAULT_VALUES: dict[str, str] | None = None


def _load_default_values() -> dict[str, str]:
    from .runtime_helpers import DotenvLoader

    global _DEFAULT_VALUES
    if _DEFAULT_VALUES is None:
        defaults: dict[str, str] = {}
        for path in _DOTENV_CANDIDATES:
            for key, value in DotenvLoader.load_from_file(path).items():
                defaults.setdefault(key, value)
        _DEFAULT_VALUES = defaults
    return _DEFAULT_VALUES


def _lookup(name: str) -> Optional[str]:
    """Raw non-blank value for *name*, environment before dotenv defaults."""
    for candidate in (os.getenv(name), _load_default_values().get(name)):
        if candidate is not None and candidate.strip():
            return candidate.strip()
    return None


def _require(name: str) -> ConfigurationError:
    return ConfigurationError(f"Required environment variable {name!r} is not set")


def env_str(name: str, or_value: str | None = None, *, required: bool = False) -> str | None:
    """Fetch an environment variable as a trimmed string."""

    value = _lookup(name)
    if value is None:
        if required and or_value is None:
            raise _require(name)
        return or_value
    return value


def env_int(name: str, or_value: int | None = None, *, required: bool = False) -> int | None:
    """Fetch an environment variable and coerce it to ``int``."""

    raw = _lookup(name)
    if raw is None:
        if required and or_value is None:
            raise _require(name)
        return or_value
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError.invalid_environment(name, raw, "an integer") from exc


def env_bool(name: str, or_value: bool | None = None, *, required: bool = False) -> bool | None:
    """Fetch an environment variable and coerce it to ``bool``."""

    raw = _lookup(name)
    if raw is None:
        if required and or_value is None:
            raise _require(name)
        return or_value

    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError.invalid_environment(name, raw, "a boolean")


def env_milliseconds(name: str, or_value: int | None = None, *, required: bool = False) -> int | None:
    """Fetch a positive duration in milliseconds."""

    value = env_int(name, or_value=or_value, required=required)
    if value is not None and value <= 0:
        raise ConfigurationError.invalid_environment(name, str(value), "a positive number of milliseconds")
    return value
