"""Firmware images: a CRC-protected description header followed by the raw binary."""

from __future__ import annotations

from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Iterable, Iterator, Union

from chipflasher.protocol import CHUNK_SIZE, crc16

StrPath = Union[str, PathLike]


class InvalidImageError(ValueError):
    """The data is not a valid firmware image."""


@dataclass(frozen=True)
class FirmwareImage:
    """A binary payload with a short text description."""

    payload: bytes
    description: str

    @classmethod
    def parse(cls, data: bytes) -> "FirmwareImage":
        """Decode an image; raise InvalidImageError if the header is missing or corrupt."""
        data = bytes(data)
        if not data:
            raise InvalidImageError("image is empty")
        text_length = data[0]
        header_end = text_length + 1
        if len(data) < header_end + 2:
            raise InvalidImageError("image is shorter than its header")
        stored = int.from_bytes(data[header_end:header_end + 2], "little")
        if crc16(data[:header_end]) != stored:
            raise InvalidImageError("header CRC mismatch")
        description = data[1:header_end].decode("utf-8", errors="replace")
        return cls(payload=data[header_end + 2:], description=description)

    @classmethod
    def from_fields(cls, payload: bytes, fields: Iterable[str]) -> "FirmwareImage":
        """Build an image whose description joins the given fields with spaces."""
        fields = list(fields)
        if not fields or any(not field for field in fields):
            raise ValueError("description fields must not be empty")
        description = " ".join(fields)
        if len(description.encode("utf-8")) > 0xFF:
            raise ValueError("description longer than 255 bytes")
        return cls(payload=bytes(payload), description=description)

    @classmethod
    def load(cls, path: StrPath) -> "FirmwareImage":
        """Read and decode an image file."""
        return cls.parse(Path(path).read_bytes())

    def to_bytes(self) -> bytes:
        """Encode the image: length byte, description, CRC, payload."""
        text = self.description.encode("utf-8")
        if len(text) > 0xFF:
            raise ValueError("description longer than 255 bytes")
        header = bytes([len(text)]) + text
        return header + crc16(header).to_bytes(2, "little") + self.payload

    def save(self, path: StrPath) -> None:
        """Write the encoded image to a file."""
        Path(path).write_bytes(self.to_bytes())

    def chunk_count(self) -> int:
        """Number of 16-byte chunks needed to hold the payload."""
        return -(-len(self.payload) // CHUNK_SIZE)

    def chunks(self) -> Iterator[tuple[int, bytes]]:
        """Yield (index, chunk) pairs as they go on the wire.

        Full chunks come first; the last one holds the remainder and is empty
        when the payload is a multiple of the chunk size.
        """
        full = len(self.payload) // CHUNK_SIZE
        for index in range(full + 1):
            yield index, self.payload[index * CHUNK_SIZE:(index + 1) * CHUNK_SIZE]

    def describe(self) -> str:
        """Summary of size, chunk count and description."""
        return (
            f"{len(self.payload) // 1024}KByte Len={self.chunk_count()}\n"
            f"{self.description}"
        )