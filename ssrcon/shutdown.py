"""
Shutdown coordination for the protocol loop.

A single flag records the first reason the process was asked to stop. Signal
handlers, the console reader and the full-screen UI all funnel into
`request_shutdown()`; the protocol loop checks `requested` once per tick.
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Optional, Union

Reason = Union[int, str]

CLOSE_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGQUIT", "SIGINT", "SIGHUP") if hasattr(signal, name)
)

_FAULT_MESSAGES = {
    "SIGILL": "Illegal instruction, closing.",
    "SIGSEGV": "Read outside of allocated memory, closing.",
    "SIGBUS": "Dereferenced an invalid pointer, closing.",
}


class ShutdownCoordinator:
    """Set-once shutdown flag shared between the loop and its collaborators."""

    def __init__(self):
        self.logger = logging.getLogger("ssrcon.shutdown")
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[Reason] = None

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[Reason]:
        return self._reason

    def request_shutdown(self, reason: Reason = "unknown") -> bool:
        """Record `reason` if this is the first request. Returns True if it was."""
        # A signal handler may interrupt a request on the main thread; the
        # lock holder always leaves the flag set.
        if not self._lock.acquire(blocking=False):
            self.logger.debug("Shutdown request in progress, ignoring %s", _reason_name(reason))
            return False
        try:
            if self._event.is_set():
                self.logger.debug("Shutdown already requested (%s), ignoring %s",
                                  self.describe(), _reason_name(reason))
                return False
            self._reason = reason
            self._event.set()
        finally:
            self._lock.release()
        self.logger.debug("Shutdown requested by %s", _reason_name(reason))
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def install_signal_handlers(self, signals=CLOSE_SIGNALS) -> dict:
        """Route close signals to `request_shutdown`. Main thread only."""
        previous = {}
        for signum in signals:
            previous[signum] = signal.signal(signum, self._handle_signal)
        return previous

    def _handle_signal(self, signum, frame) -> None:
        self.request_shutdown(signum)

    def describe(self) -> str:
        reason = self._reason
        if reason is None:
            return "Exited."
        if isinstance(reason, str):
            return f"{reason[:1].upper()}{reason[1:]}, closing."
        if reason in CLOSE_SIGNALS:
            return "Close signal received, closing."
        name = _reason_name(reason)
        return _FAULT_MESSAGES.get(name, f"{name} received, closing.")


def _reason_name(reason: Reason) -> str:
    if isinstance(reason, str):
        return reason
    try:
        return signal.Signals(reason).name
    except ValueError:
        return f"signal {reason}"
