"""Hard upper bound on shutdown time."""

from __future__ import annotations

import os
import threading

from loguru import logger


class ShutdownWatchdog:
    """Force-exits the process if shutdown takes longer than ``timeout``.

    Runs on a daemon thread so it still fires when the event loop is
    blocked inside a misbehaving close() call.
    """

    def __init__(self, timeout: float) -> None:
        self._timeout = timeout
        self._timer: threading.Timer | None = None

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def start(self, exit_code: int = 0) -> None:
        """Arm the watchdog. Later calls are ignored."""
        if self._timer is not None:
            return
        self._timer = threading.Timer(self._timeout, self._fire, args=(exit_code,))
        self._timer.daemon = True
        self._timer.start()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, exit_code: int) -> None:
        logger.error(f"Shutdown did not finish within {self._timeout}s, forcing exit")
        os._exit(exit_code)
