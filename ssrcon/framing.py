# ssrcon/framing.py
from __future__ import annotations

from typing import Optional

from .errors import FramingError, MalformedFrame
from .protocol import MAX_PACKET_SIZE, MIN_PACKET_SIZE, SIZE

COMPACT_AT = 64_000  # drop consumed bytes once the cursor passes this offset
SANE_LIMIT = 1 << 20  # larger size prefixes mean the stream is out of sync


class FrameBuffer:
    """
    Accumulates stream bytes and hands out complete frames.

    Bytes live in one bytearray; `_pos` marks where unconsumed data starts, so a
    frame whose header arrived before its body simply waits for the next feed.
    """

    def __init__(self, max_packet_size: int = MAX_PACKET_SIZE):
        self.max_packet_size = max_packet_size
        self._data = bytearray()
        self._pos = 0

    @property
    def pending(self) -> int:
        return len(self._data) - self._pos

    def feed(self, chunk: bytes) -> None:
        self._data += chunk

    def clear(self) -> None:
        self._data.clear()
        self._pos = 0

    def pop(self) -> Optional[bytes]:
        """
        Return the next payload (size prefix stripped) or None if incomplete.

        Raises FramingError for an impossible size prefix, MalformedFrame after
        consuming a frame that exceeds `max_packet_size`.
        """
        if self.pending < SIZE.size:
            return None
        (size,) = SIZE.unpack_from(self._data, self._pos)
        if size < MIN_PACKET_SIZE:
            raise FramingError(f"size prefix {size} is below the {MIN_PACKET_SIZE} byte minimum")
        if size > SANE_LIMIT:
            raise FramingError(f"size prefix {size} is not a plausible RCON frame")
        end = self._pos + SIZE.size + size
        if end > len(self._data):
            return None
        payload = bytes(self._data[self._pos + SIZE.size:end])
        self._pos = end
        self._compact()
        if size > self.max_packet_size:
            raise MalformedFrame(f"frame of {size} bytes exceeds the {self.max_packet_size} byte limit, discarded")
        return payload

    def _compact(self) -> None:
        if self._pos == len(self._data):
            self.clear()
        elif self._pos >= COMPACT_AT:
            del self._data[:self._pos]
            self._pos = 0
