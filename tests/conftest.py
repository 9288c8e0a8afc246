"""Shared pytest configuration and fixtures for the ssrcon test suite."""

import logging
import socket
import struct
import sys
import time
from collections import deque
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ssrcon.config import ClientSettings, Credentials  # noqa: E402
from ssrcon.logs import set_debug_level  # noqa: E402
from ssrcon.protocol import RconMessage, decode  # noqa: E402


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeConnection:
    """Scripted stand-in for RconConnection.

    `replies` holds what successive receive() calls return: RconMessage, None,
    or an exception instance to raise.
    """

    def __init__(self):
        self.replies = deque()
        self.sent = []
        self.connects = []
        self.connect_errors = deque()
        self.send_error = None
        self.closed = 0
        self.connected = False

    def connect(self, address, port):
        self.connects.append((address, port))
        if self.connect_errors:
            raise self.connect_errors.popleft()
        self.connected = True

    def send(self, frame):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(decode(frame[4:]))

    def receive(self, max_wait=0.0):
        if not self.replies:
            return None
        item = self.replies.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed += 1
        self.connected = False


class StubServer:
    """Listening socket on localhost; tests accept and script the server side."""

    def __init__(self):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(4)
        self.port = self.sock.getsockname()[1]

    def accept(self, timeout: float = 2.0) -> socket.socket:
        self.sock.settimeout(timeout)
        conn, _ = self.sock.accept()
        conn.settimeout(timeout)
        return conn

    def close(self) -> None:
        self.sock.close()


def recv_exact(conn: socket.socket, count: int) -> bytes:
    data = b""
    while len(data) < count:
        chunk = conn.recv(count - len(data))
        if not chunk:
            raise ConnectionError("stub peer closed")
        data += chunk
    return data


def read_frame(conn: socket.socket) -> RconMessage:
    (size,) = struct.unpack("<i", recv_exact(conn, 4))
    return decode(recv_exact(conn, size))


def send_frame(conn: socket.socket, req_id: int, kind: int, body: bytes = b"") -> None:
    conn.sendall(struct.pack("<iii", 10 + len(body), req_id, kind) + body + b"\x00\x00")


def tick_until(client, predicate, timeout: float = 3.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        client.tick()
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings() -> ClientSettings:
    """Fast settings: short ticks, small auth budget."""
    return ClientSettings(poll_interval=0.01, auth_attempts=3, close_cooldown=1.0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(address="rcon.example", port="27015", password="hunter2")


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def stub_server():
    server = StubServer()
    yield server
    server.close()


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    set_debug_level(0)
