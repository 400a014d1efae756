"""Wire format of the bootloader link: frame builders, checksum and CRC, and a frame parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable

HEADER = b"\xc1\xb7"
MARKER = ord("P")
CHUNK_SIZE = 16
REPLY_BODY_SIZE = 9

_CRC_POLY = 0x0815


class Command(IntEnum):
    """Command codes used on the link."""

    DATA = 0x15
    PREPARE = 0x16
    RUN_APP = 0x17
    ERASE = 0x18
    ERASE_PROGRESS = 0x19
    DEVICE_ID = 0x20
    BOOT = 0x55


def crc16(data: bytes) -> int:
    """Return the 16-bit CRC used to protect image headers.

    Bytes of 0x80 and above enter the register sign-extended to 16 bits,
    which the image format depends on.
    """
    crc = 0xFFFF
    for byte in data:
        crc ^= byte | 0xFF00 if byte & 0x80 else byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ _CRC_POLY
            else:
                crc >>= 1
    return crc


def _checksum(data: bytes) -> bytes:
    return (sum(data) & 0xFFFF).to_bytes(2, "little")


def command_frame(command: int, value: int) -> bytes:
    """Build a command frame carrying a 16-bit value."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"value out of range: {value}")
    if not 0 <= command <= 0xFF:
        raise ValueError(f"command out of range: {command}")
    payload = value.to_bytes(2, "little")
    return HEADER + bytes([MARKER, command, len(payload)]) + payload + _checksum(payload)


def data_frame(index: int, chunk: bytes) -> bytes:
    """Build a data frame holding the chunk with the given index."""
    if not 0 <= index <= 0xFFFF:
        raise ValueError(f"chunk index out of range: {index}")
    if len(chunk) > CHUNK_SIZE:
        raise ValueError(f"chunk longer than {CHUNK_SIZE} bytes")
    body = index.to_bytes(2, "little") + bytes(chunk)
    return HEADER + bytes([MARKER, Command.DATA, len(body)]) + body + _checksum(body)


def boot_frame() -> bytes:
    """Build the frame that asks a running application to enter the bootloader."""
    return HEADER + bytes([MARKER, Command.BOOT, 2, 0xAA, 0x55, 0xFF, 0x00, 0x81])


@dataclass(frozen=True)
class Frame:
    """A reply frame from the device: marker, command, length and four payload bytes."""

    marker: int
    command: int
    length: int
    payload: bytes

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Frame":
        """Decode the nine bytes that follow the header; raise ValueError if invalid."""
        raw = bytes(raw)
        if len(raw) != REPLY_BODY_SIZE:
            raise ValueError(f"reply body must be {REPLY_BODY_SIZE} bytes, got {len(raw)}")
        payload = raw[3:7]
        expected = int.from_bytes(raw[7:9], "little")
        if sum(payload) & 0xFFFF != expected:
            raise ValueError("reply checksum mismatch")
        return cls(marker=raw[0], command=raw[1], length=raw[2], payload=payload)

    @property
    def value(self) -> int:
        """The first two payload bytes as a little-endian number."""
        return int.from_bytes(self.payload[:2], "little")

    @property
    def word(self) -> int:
        """All four payload bytes as a little-endian number."""
        return int.from_bytes(self.payload[:4], "little")


class FrameParser:
    """Turns a byte stream from the device into reply frames, dropping corrupt ones."""

    def __init__(self) -> None:
        self._previous = 0
        self._last = 0
        self._body: bytearray | None = None

    def feed_byte(self, byte: int) -> Frame | None:
        """Consume one byte; return a frame when one is complete and valid."""
        byte &= 0xFF
        self._previous, self._last = self._last, byte
        if self._body is None:
            if self._previous == HEADER[0] and byte == HEADER[1]:
                self._body = bytearray()
            return None
        self._body.append(byte)
        if len(self._body) < REPLY_BODY_SIZE:
            return None
        raw = bytes(self._body)
        self._body = None
        try:
            return Frame.from_bytes(raw)
        except ValueError:
            return None

    def feed(self, data: Iterable[int]) -> list[Frame]:
        """Consume a block of bytes and return the frames completed by it."""
        return [frame for frame in map(self.feed_byte, data) if frame is not None]