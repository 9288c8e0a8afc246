# ssrcon/protocol.py
from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from .errors import FrameTooLarge, InvalidBody, MalformedFrame, MissingTerminator, ProtocolMismatch

DEFAULT_PORT = 27015
MAX_PACKET_SIZE = 4089    # largest size field accepted, excludes the prefix itself
MIN_PACKET_SIZE = 10      # id + type + two terminators
HEADER = struct.Struct("<iii")
SIZE = struct.Struct("<i")
TERMINATOR = b"\x00\x00"


class MessageType(IntEnum):
    """SERVERDATA_* values. EXECCOMMAND is an alias of AUTH_RESPONSE."""

    RESPONSE_VALUE = 0
    AUTH_RESPONSE = 2
    EXECCOMMAND = 2
    AUTH = 3


@dataclass(frozen=True)
class RconMessage:
    id: int
    type: int
    body: bytes = b""

    @property
    def size(self) -> int:
        return MIN_PACKET_SIZE + len(self.body)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", "ignore")

    def __repr__(self) -> str:
        return f"<RconMessage {self.id} type={self.type} {len(self.body)}B>"


def encode(body: bytes, req_id: int, kind: int, max_size: int = MAX_PACKET_SIZE) -> bytes:
    """Build one wire frame. Bodies with NUL or over the size limit are rejected."""
    if b"\x00" in body:
        raise InvalidBody("RCON body may not contain NUL bytes")
    size = MIN_PACKET_SIZE + len(body)
    if size > max_size:
        raise FrameTooLarge(f"RCON body of {len(body)} bytes exceeds the {max_size - MIN_PACKET_SIZE} byte limit")
    return HEADER.pack(size, req_id, kind) + body + TERMINATOR


def decode(payload: bytes) -> RconMessage:
    """Parse a frame whose 4-byte size prefix was already consumed."""
    if len(payload) < MIN_PACKET_SIZE:
        raise MalformedFrame(f"frame of {len(payload)} bytes is shorter than the {MIN_PACKET_SIZE} byte minimum")
    req_id, kind = struct.unpack_from("<ii", payload, 0)
    tail = bytes(payload[-2:])
    if tail != TERMINATOR:
        raise MissingTerminator(tail)
    return RconMessage(req_id, kind, bytes(payload[8:-2]))


def expect(message: RconMessage, req_id: int, kind: int) -> RconMessage:
    """Reconcile a reply against the id and type the caller is waiting for."""
    if message.id != req_id:
        raise ProtocolMismatch("id", req_id, message.id)
    if message.type != kind:
        raise ProtocolMismatch("type", kind, message.type)
    return message


def wrap_int32(value: int) -> int:
    return (value + 2**31) % 2**32 - 2**31
