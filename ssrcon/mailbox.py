# ssrcon/mailbox.py
from __future__ import annotations

import threading
from collections import deque
from typing import Optional


class Mailbox:
    """
    Hands typed lines from the console thread to the protocol loop.

    Commands queue up in arrival order. Prompts for credentials use
    `discard()` + `take_latest()` so only the newest answer counts.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._lines: deque[str] = deque()
        self.expecting_secret = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    def put(self, line: str) -> None:
        line = line.rstrip("\r\n")
        if not line:
            return
        with self._lock:
            self._lines.append(line)

    def take(self) -> Optional[str]:
        with self._lock:
            return self._lines.popleft() if self._lines else None

    def take_latest(self) -> Optional[str]:
        with self._lock:
            if not self._lines:
                return None
            line = self._lines[-1]
            self._lines.clear()
            return line

    def discard(self) -> int:
        with self._lock:
            dropped = len(self._lines)
            self._lines.clear()
            return dropped
