# ssrcon/session.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .config import Credentials
from .connection import RconConnection
from .protocol import wrap_int32


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    RUNNING = "running"
    CLOSING = "closing"


@dataclass
class Session:
    """Everything the protocol loop owns for one server."""

    credentials: Credentials = field(default_factory=Credentials)
    connection: RconConnection = field(default_factory=RconConnection)
    state: ConnectionState = ConnectionState.DISCONNECTED
    next_command_id: int = 0

    def advance_command_id(self) -> int:
        self.next_command_id = wrap_int32(self.next_command_id + 1)
        return self.next_command_id

    def reset_command_ids(self) -> None:
        self.next_command_id = 0
