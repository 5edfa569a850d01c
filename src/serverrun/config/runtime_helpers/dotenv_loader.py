"""Dotenv file loading."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Tuple

from ..errors import ConfigurationError

_EXPORT_PREFIX = "export "
_QUOTES = ("'", '"')


class DotenvLoader:
    """Reads ``NAME=value`` assignments from .env-style files."""

    @staticmethod
    def load_from_file(path: Path) -> Dict[str, str]:
        """
        Load the assignments declared in *path*.

        Blank lines, ``#`` comments and lines without ``=`` are ignored. A
        leading ``export`` and one pair of matching quotes around the value are
        stripped.

        Raises:
            ConfigurationError: If the file exists but cannot be read
        """
        if not path.is_file():
            return {}

        try:
            text = path.read_text()
        except OSError as exc:
            raise ConfigurationError.load_failed("dotenv file", str(path)) from exc

        values: Dict[str, str] = {}
        for line in text.splitlines():
            parsed = DotenvLoader.parse_line(line)
            if parsed is not None:
                values[parsed[0]] = parsed[1]
        return values

    @staticmethod
    def parse_line(line: str) -> Optional[Tuple[str, str]]:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return None

        name, separator, value = stripped.partition("=")
        if not separator:
            return None
        name = name.strip()
        if name.startswith(_EXPORT_PREFIX):
            name = name[len(_EXPORT_PREFIX) :].strip()
        if not name:
            return None

        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
            value = value[1:-1]
        return name, value
