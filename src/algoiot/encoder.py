"""
Canonical MessagePack encoder for Algorand transactions.

Only the subset of MessagePack that Algorand transaction maps need is
supported: short maps and arrays, strings, binary blobs, booleans and
unsigned integers. The encoder writes into a fixed-size buffer and never
grows it. Algorand nodes re-encode transactions canonically before checking
signatures, so integers must always use the smallest width that holds the
value.

Format bytes:
    0x00-0x7f  positive fixint
    0x80-0x8f  fixmap
    0x90-0x9f  fixarray
    0xa0-0xbf  fixstr
    0xc2, 0xc3 false, true
    0xc4       bin 8
    0xc5       bin 16
    0xcc       uint 8
    0xcd       uint 16
    0xce       uint 32
    0xcf       uint 64
    0xd9       str 8
"""

import struct

from .types import (
    MAX_TRANSACTION_SIZE,
    SHORT_MAP_MAX_FIELDS,
    SHORT_STRING_MAX_LENGTH,
    SHORT_BYTES_MAX_LENGTH,
    EncoderCapacityError,
)


FIXMAP = 0x80
FIXARRAY = 0x90
FIXSTR = 0xA0
FALSE = 0xC2
TRUE = 0xC3
BIN8 = 0xC4
BIN16 = 0xC5
STR8 = 0xD9
UINT8 = 0xCC
UINT16 = 0xCD
UINT32 = 0xCE
UINT64 = 0xCF

BIN16_MAX_LENGTH = 0xFFFF
STR8_MAX_LENGTH = 0xFF


def map_header_size(count: int) -> int:
    """Encoded size of a short map header."""
    return 1


def string_size(text: str) -> int:
    """Encoded size of a short string."""
    return 1 + len(text.encode("utf-8"))


def bytes_size(length: int) -> int:
    """Encoded size of a binary value holding ``length`` bytes."""
    if length <= SHORT_BYTES_MAX_LENGTH:
        return 2 + length
    return 3 + length


def uint_size(value: int) -> int:
    """Encoded size of ``value`` using the smallest width."""
    if value < 0x80:
        return 1
    if value <= 0xFF:
        return 2
    if value <= 0xFFFF:
        return 3
    if value <= 0xFFFFFFFF:
        return 5
    return 9


class CanonicalEncoder:
    """
    Append-only MessagePack writer over a fixed-capacity buffer.

    ``position`` is the write cursor. ``length`` is the end of the written
    content; moving the cursor back with :meth:`seek` does not shrink it, so
    bytes past the cursor survive until they are overwritten.

    Every write checks the remaining capacity first and raises
    :class:`EncoderCapacityError` without touching the buffer if the value
    does not fit.
    """

    def __init__(self, capacity: int = MAX_TRANSACTION_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}")
        self._buffer = bytearray(capacity)
        self._position = 0
        self._length = 0

    @property
    def capacity(self) -> int:
        return len(self._buffer)

    @property
    def position(self) -> int:
        return self._position

    @property
    def length(self) -> int:
        return self._length

    @property
    def remaining(self) -> int:
        return self.capacity - self._position

    def seek(self, position: int) -> None:
        """Move the cursor to an absolute offset."""
        if position < 0 or position > self.capacity:
            raise EncoderCapacityError(position, self.capacity)
        self._position = position
        if position > self._length:
            self._length = position

    def getvalue(self) -> bytes:
        """The written content, from offset 0 to ``length``."""
        return bytes(self._buffer[: self._length])

    def view(self, start: int, end: int) -> bytes:
        """A copy of ``buffer[start:end]``."""
        return bytes(self._buffer[start:end])

    def patch(self, offset: int, data: bytes) -> None:
        """Overwrite bytes at ``offset`` without moving the cursor."""
        if offset < 0 or offset + len(data) > self.capacity:
            raise EncoderCapacityError(len(data), max(self.capacity - offset, 0))
        self._buffer[offset : offset + len(data)] = data

    def _write(self, data: bytes) -> None:
        if len(data) > self.remaining:
            raise EncoderCapacityError(len(data), self.remaining)
        end = self._position + len(data)
        self._buffer[self._position : end] = data
        self._position = end
        if end > self._length:
            self._length = end

    # MARK: - Containers and strings

    def add_map_header(self, count: int) -> None:
        if not 0 <= count <= SHORT_MAP_MAX_FIELDS:
            raise ValueError(
                f"Short map holds at most {SHORT_MAP_MAX_FIELDS} fields, got {count}"
            )
        self._write(bytes([FIXMAP | count]))

    def add_array_header(self, count: int) -> None:
        if not 0 <= count <= SHORT_MAP_MAX_FIELDS:
            raise ValueError(
                f"Short array holds at most {SHORT_MAP_MAX_FIELDS} items, got {count}"
            )
        self._write(bytes([FIXARRAY | count]))

    def add_string(self, text: str) -> None:
        encoded = text.encode("utf-8")
        if len(encoded) > SHORT_STRING_MAX_LENGTH:
            raise ValueError(
                f"Short string holds at most {SHORT_STRING_MAX_LENGTH} bytes, "
                f"got {len(encoded)}"
            )
        self._write(bytes([FIXSTR | len(encoded)]) + encoded)

    def add_text(self, text: str) -> None:
        """Write a string value, fixstr up to 31 bytes and str 8 above."""
        encoded = text.encode("utf-8")
        if len(encoded) <= SHORT_STRING_MAX_LENGTH:
            self.add_string(text)
            return
        if len(encoded) > STR8_MAX_LENGTH:
            raise ValueError(f"String value too long: {len(encoded)} bytes")
        self._write(struct.pack(">BB", STR8, len(encoded)) + encoded)

    def add_bool(self, value: bool) -> None:
        self._write(bytes([TRUE if value else FALSE]))

    def add_bytes(self, data: bytes) -> None:
        """Write a binary value, bin 8 below 256 bytes and bin 16 above."""
        length = len(data)
        if length <= SHORT_BYTES_MAX_LENGTH:
            header = struct.pack(">BB", BIN8, length)
        elif length <= BIN16_MAX_LENGTH:
            header = struct.pack(">BH", BIN16, length)
        else:
            raise ValueError(f"Binary value too long: {length} bytes")
        self._write(header + bytes(data))

    # MARK: - Unsigned integers

    def add_uint7(self, value: int) -> None:
        if not 0 <= value < 0x80:
            raise ValueError(f"Value does not fit in a positive fixint: {value}")
        self._write(bytes([value]))

    def add_uint8(self, value: int) -> None:
        if not 0 <= value <= 0xFF:
            raise ValueError(f"Value does not fit in uint 8: {value}")
        self._write(struct.pack(">BB", UINT8, value))

    def add_uint16(self, value: int) -> None:
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"Value does not fit in uint 16: {value}")
        self._write(struct.pack(">BH", UINT16, value))

    def add_uint32(self, value: int) -> None:
        if not 0 <= value <= 0xFFFFFFFF:
            raise ValueError(f"Value does not fit in uint 32: {value}")
        self._write(struct.pack(">BI", UINT32, value))

    def add_uint64(self, value: int) -> None:
        if not 0 <= value <= 0xFFFFFFFFFFFFFFFF:
            raise ValueError(f"Value does not fit in uint 64: {value}")
        self._write(struct.pack(">BQ", UINT64, value))

    def add_uint(self, value: int) -> None:
        """Write ``value`` using the smallest width that holds it."""
        if value < 0:
            raise ValueError(f"Negative values are not supported: {value}")
        if value < 0x80:
            self.add_uint7(value)
        elif value <= 0xFF:
            self.add_uint8(value)
        elif value <= 0xFFFF:
            self.add_uint16(value)
        elif value <= 0xFFFFFFFF:
            self.add_uint32(value)
        else:
            self.add_uint64(value)
