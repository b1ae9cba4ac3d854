"""A minimal CBOR encoder for the definite-length items used in attestations."""

from __future__ import annotations

from enum import IntEnum
from typing import BinaryIO

_MAX_ARGUMENT = 2**64


class MajorType(IntEnum):
    """CBOR major types."""

    POSITIVE_INTEGER = 0
    NEGATIVE_INTEGER = 1
    BYTE_STRING = 2
    TEXT_STRING = 3
    ARRAY = 4
    MAP = 5
    TAG = 6
    FLOAT = 7

    @property
    def mask(self) -> int:
        """The major type shifted into the top three bits of the initial byte."""
        return self.value << 5


class CborWriter:
    """Writes CBOR items to a binary stream."""

    def __init__(self, writer: BinaryIO) -> None:
        self._writer = writer

    def write_bytes(self, data: bytes) -> None:
        """Write a byte string."""
        payload = bytes(data)
        self._write_head(MajorType.BYTE_STRING, len(payload))
        self._writer.write(payload)

    def write_number(self, num: int) -> None:
        """Write a signed integer; raise ValueError if it does not fit in 64 bits."""
        if num >= 0:
            self._write_head(MajorType.POSITIVE_INTEGER, num)
        else:
            self._write_head(MajorType.NEGATIVE_INTEGER, -num - 1)

    def write_map_start(self, length: int) -> None:
        """Write the header of a map holding ``length`` pairs."""
        self._write_head(MajorType.MAP, length)

    def write_array_start(self, length: int) -> None:
        """Write the header of an array holding ``length`` items."""
        self._write_head(MajorType.ARRAY, length)

    def write_text(self, text: str) -> None:
        """Write a UTF-8 text string."""
        payload = text.encode("utf-8")
        self._write_head(MajorType.TEXT_STRING, len(payload))
        self._writer.write(payload)

    def _write_head(self, major_type: MajorType, argument: int) -> None:
        mask = major_type.mask
        if argument < 0 or argument >= _MAX_ARGUMENT:
            raise ValueError("value too large")
        if argument < 24:
            self._writer.write(bytes([mask | argument]))
            return
        for info, width in ((24, 1), (25, 2), (26, 4), (27, 8)):
            if argument < 2 ** (8 * width):
                self._writer.write(bytes([mask | info]) + argument.to_bytes(width, "big"))
                return