# ssrcon/errors.py
from __future__ import annotations


class RconError(Exception):
    """Base exception for all RCON-related errors."""


class ConnectFailed(RconError):
    """DNS, socket creation or connect failure."""

    RESOLUTION = "resolution"
    SOCKET = "socket"
    REFUSED = "refused"
    TIMEOUT = "timeout"

    def __init__(self, reason: str, detail: str = ""):
        super().__init__(f"{reason}: {detail}" if detail else reason)
        self.reason = reason
        self.detail = detail


class ConnectionLost(RconError):
    """Read or write failed mid-session; the socket is unusable."""


class Truncated(ConnectionLost):
    """Peer closed the connection in the middle of a frame."""


class FramingError(ConnectionLost):
    """Size prefix is impossible, the stream cannot be resynchronised."""


class DecodeError(RconError):
    """A complete frame was received but could not be decoded.

    The frame has already been consumed, so the caller may discard it and
    keep reading.
    """


class MissingTerminator(DecodeError):
    def __init__(self, tail: bytes = b""):
        super().__init__(
            "reply is missing either the null terminator on the body "
            f"or the trailing empty string (got {tail.hex(' ') or 'nothing'})"
        )
        self.tail = tail


class MalformedFrame(DecodeError):
    """Frame shorter than the fixed header or larger than the packet limit."""


class FrameTooLarge(RconError, ValueError):
    """Outbound body cannot be encoded within the packet limit."""


class InvalidBody(RconError, ValueError):
    """Outbound body contains a NUL byte, which would end it early on the wire."""


class ProtocolMismatch(RconError):
    """Reply id or type differs from what the current phase expects."""

    def __init__(self, field: str, expected: int, received: int):
        super().__init__(f"reply {field} {received} did not match expected {expected}")
        self.field = field
        self.expected = expected
        self.received = received


class AuthTimeout(RconError):
    """No acceptable reply within the auth retry budget."""

    def __init__(self, waiting_for: str, attempts: int):
        super().__init__(f"timed out after {attempts} polls waiting for {waiting_for}")
        self.waiting_for = waiting_for
        self.attempts = attempts


class AuthRejected(RconError):
    """Server answered the auth request with a different id (wrong password)."""

    def __init__(self, received_id: int):
        super().__init__(f"server responded with id {received_id}, the password may be wrong")
        self.received_id = received_id
