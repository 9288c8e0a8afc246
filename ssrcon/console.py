# ssrcon/console.py
from __future__ import annotations

import logging
import signal
import threading
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.filters import Condition

from .mailbox import Mailbox
from .shutdown import ShutdownCoordinator

PROMPT = "> "

log = logging.getLogger("ssrcon.console")


class ConsoleReader(threading.Thread):
    """Reads lines from the terminal and drops them into the mailbox."""

    def __init__(
        self,
        mailbox: Mailbox,
        shutdown: ShutdownCoordinator,
        session: Optional[PromptSession] = None,
        poll_interval: float = 0.1,
    ):
        super().__init__(name="ssrcon-console", daemon=True)
        self.mailbox = mailbox
        self.shutdown = shutdown
        self.poll_interval = poll_interval
        self._session = session

    def run(self) -> None:
        session = self._session or PromptSession()
        self._session = session
        secret = Condition(lambda: self.mailbox.expecting_secret)
        while not self.shutdown.requested:
            try:
                # Signal handlers can only be installed from the main thread.
                line = session.prompt(PROMPT, is_password=secret, handle_sigint=False)
            except EOFError:
                self.shutdown.request_shutdown("console closed")
                break
            except KeyboardInterrupt:
                self.shutdown.request_shutdown(signal.SIGINT)
                break
            self.mailbox.put(line)
            self.shutdown.wait(self.poll_interval)
        log.debug("Console reader stopped")

    def stop(self) -> None:
        """Ask a running prompt to return so the thread can finish."""
        app = getattr(self._session, "app", None)
        loop = getattr(app, "loop", None)
        if app is None or loop is None or not app.is_running:
            return
        try:
            loop.call_soon_threadsafe(lambda: app.exit(exception=EOFError()) if app.is_running else None)
        except RuntimeError:
            # loop already closed
            pass
