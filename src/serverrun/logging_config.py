"""
Logging setup for the server-run command.

Console output always goes to stdout: plain messages at INFO, or timestamped
records at DEBUG when verbose. Setting SERVER_RUN_LOG_DIR adds a
``{service_name}.log`` file there, truncated on each run unless LOG_APPEND=1.
"""

import logging
import logging.handlers
import sys
import threading
from pathlib import Path
from typing import Optional

from .config import env_bool, env_str

_setup_lock = threading.Lock()
_MODULE_LOGGER = logging.getLogger(__name__)

LOG_DIR_ENV = "SERVER_RUN_LOG_DIR"
LOG_APPEND_ENV = "LOG_APPEND"

_DETAILED_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_NOISY_LOGGERS = ("asyncio", "aiohttp", "aiohttp.access", "aiohttp.client")


def _detach_handlers(target: logging.Logger) -> None:
    for handler in list(target.handlers):
        target.removeHandler(handler)
        try:
            handler.close()
        except OSError as exc:  # Best-effort cleanup operation  # policy_guard: allow-silent-handler
            _MODULE_LOGGER.debug("Closing log handler %r failed: %s", handler, exc)


def _detailed_formatter() -> logging.Formatter:
    return logging.Formatter(_DETAILED_FORMAT, _DATE_FORMAT)


def _console_handler(verbose: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_detailed_formatter() if verbose else logging.Formatter("%(message)s"))
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    return handler


def _file_handler(service_name: Optional[str]) -> Optional[logging.Handler]:
    log_dir = env_str(LOG_DIR_ENV)
    if not service_name or not log_dir:
        return None

    directory = Path(log_dir).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    mode = "a" if env_bool(LOG_APPEND_ENV, or_value=False) else "w"

    handler_cls = getattr(logging.handlers, "WatchedFileHandler", logging.FileHandler)
    handler = handler_cls(directory / f"{service_name}.log", mode=mode)
    handler.setFormatter(_detailed_formatter())
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging(service_name: Optional[str] = None, verbose: bool = False) -> None:
    """Configure the root logger; repeat calls replace the previous handlers."""

    with _setup_lock:
        root = logging.getLogger()
        _detach_handlers(root)
        for name in list(logging.Logger.manager.loggerDict):
            named = logging.getLogger(name)
            _detach_handlers(named)
            named.propagate = True

        root.addHandler(_console_handler(verbose))
        file_handler = _file_handler(service_name)
        if file_handler is not None:
            root.addHandler(file_handler)

        root.setLevel(logging.DEBUG if verbose else logging.INFO)
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["LOG_APPEND_ENV", "LOG_DIR_ENV", "setup_logging"]
