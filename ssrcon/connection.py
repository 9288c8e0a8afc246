# ssrcon/connection.py
from __future__ import annotations

import logging
import select
import socket
from typing import Optional

from . import logs
from .errors import ConnectFailed, ConnectionLost, Truncated
from .framing import FrameBuffer
from .protocol import MAX_PACKET_SIZE, RconMessage, decode

RECV_CHUNK = 8192

log = logging.getLogger("ssrcon.connection")


class RconConnection:
    """Owns the TCP socket: connect, send whole frames, receive one frame at a time."""

    def __init__(self, max_packet_size: int = MAX_PACKET_SIZE, connect_timeout: Optional[float] = None):
        self.connect_timeout = connect_timeout
        self._sock: Optional[socket.socket] = None
        self._buffer = FrameBuffer(max_packet_size)

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self, address: str, port: int) -> None:
        self.close()
        try:
            if self.connect_timeout is None:
                sock = socket.create_connection((address, port))
            else:
                sock = socket.create_connection((address, port), timeout=self.connect_timeout)
        except socket.gaierror as e:
            raise ConnectFailed(ConnectFailed.RESOLUTION, f"unable to find the server {address}: {e}") from e
        except (socket.timeout, TimeoutError) as e:
            raise ConnectFailed(ConnectFailed.TIMEOUT, f"{address}:{port} timed out") from e
        except ConnectionRefusedError as e:
            raise ConnectFailed(ConnectFailed.REFUSED, f"{address}:{port} refused the connection") from e
        except (OSError, OverflowError, UnicodeError) as e:
            raise ConnectFailed(ConnectFailed.SOCKET, f"unable to open a socket to {address}:{port}: {e}") from e
        sock.settimeout(None)
        self._sock = sock
        self._buffer.clear()
        logs.debug(log, logs.DEBUG_MINIMAL, "Socket open to %s:%d", address, port)

    def send(self, frame: bytes) -> None:
        if self._sock is None:
            raise ConnectionLost("not connected")
        logs.hexdump(log, "Sending", frame)
        try:
            self._sock.sendall(frame)
        except OSError as e:
            raise ConnectionLost(f"unable to send to the RCON server: {e}") from e
        logs.debug(log, logs.DEBUG_MINIMAL, "Message sent successfully.")

    def receive(self, max_wait: float = 0.0) -> Optional[RconMessage]:
        """
        Next complete message, or None if nothing complete is available yet.

        Buffered frames are returned before the socket is touched again. Decode
        errors propagate once the offending frame is consumed.
        """
        if self._sock is None:
            raise ConnectionLost("not connected")
        payload = self._buffer.pop()
        if payload is None:
            self._fill(max_wait)
            payload = self._buffer.pop()
            if payload is None:
                return None
        logs.debug(log, logs.DEBUG_STANDARD, "Size %d.", len(payload))
        logs.hexdump(log, "Received", payload)
        return decode(payload)

    def _fill(self, max_wait: float) -> None:
        sock = self._sock
        try:
            readable, _, _ = select.select([sock], [], [], max(0.0, max_wait))
            if not readable:
                return
            chunk = sock.recv(RECV_CHUNK)
        except (OSError, ValueError) as e:
            raise ConnectionLost(f"error on RCON socket while reading: {e}") from e
        if not chunk:
            if self._buffer.pending:
                raise Truncated(f"connection closed with {self._buffer.pending} bytes of a frame unread")
            raise ConnectionLost("connection closed by the server")
        self._buffer.feed(chunk)

    def close(self) -> None:
        sock, self._sock = self._sock, None
        self._buffer.clear()
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()
