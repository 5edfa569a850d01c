"""Per-handle SIGINT/SIGTERM registration on the running event loop."""

import asyncio
import logging
import signal
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

SignalCallback = Callable[[signal.Signals], None]

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalGuard:
    """Dispatch process signals to the server handles that are still active.

    The loop-level handlers are installed when the first handle registers and
    removed as soon as the last one unregisters, so nothing leaks past the
    lifetime of the supervised processes.
    """

    def __init__(self, signals=HANDLED_SIGNALS):
        self.signals = tuple(signals)
        self._callbacks: Dict[int, SignalCallback] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed: List[signal.Signals] = []

    def register(self, key: int, callback: SignalCallback) -> None:
        self._callbacks[key] = callback
        if not self._installed:
            self._install()

    def unregister(self, key: int) -> None:
        if self._callbacks.pop(key, None) is None:
            return
        if not self._callbacks:
            self._uninstall()

    @property
    def active_keys(self) -> List[int]:
        return list(self._callbacks)

    @property
    def installed_signals(self) -> List[signal.Signals]:
        return list(self._installed)

    def dispatch(self, signum: signal.Signals) -> None:
        for callback in list(self._callbacks.values()):
            callback(signum)

    def _install(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in self.signals:
            try:
                loop.add_signal_handler(signum, self.dispatch, signum)
            except (NotImplementedError, RuntimeError, ValueError):  # Expected data validation or parsing failure  # policy_guard: allow-silent-handler
                # add_signal_handler is unavailable on Windows and outside the main thread.
                logger.debug("Cannot install %s handler on this event loop", signum.name)
                continue
            self._installed.append(signum)
        self._loop = loop

    def _uninstall(self) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            for signum in self._installed:
                loop.remove_signal_handler(signum)
        self._installed = []
        self._loop = None
