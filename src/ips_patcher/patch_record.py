"""IPS patch records: literal byte runs and RLE fills.

Wire layout (big-endian):
    literal: [offset:3][size:2][data:size]
    RLE:     [offset:3][0x0000][count:2][fill:1]

A size field of zero right after the offset marks an RLE record; the real
repeat count follows in the next two bytes.
"""
import logging
from dataclasses import dataclass
from typing import BinaryIO, ClassVar

from .errors import MalformedOffset, ReservedOffset, RLEDataOverflow, SizeMismatch, SizeOverflow, ZeroSize

logger = logging.getLogger(__name__)

IPS_HEADER = b"PATCH"
IPS_EOF = b"EOF"

MAX_OFFSET = 0xFFFFFF
MAX_SIZE = 0xFFFF
RLE_SENTINEL = b"\x00\x00"


def offset_from_address(address: int) -> bytes:
    """Pack an integer file offset into the 3-byte IPS offset field."""
    if not 0 <= address <= MAX_OFFSET:
        raise MalformedOffset(f"Offset 0x{address:X} does not fit in 3 bytes")
    return address.to_bytes(3, "big")


@dataclass(frozen=True)
class PatchRecord:
    """One edit operation at a 3-byte offset.

    Use LiteralRecord or RLERecord (or new_record() when the variant comes from
    a tag). Only the offset is checked on construction; call validate() to
    check size/data consistency.
    """

    offset: bytes
    size: int
    data: bytes

    is_rle: ClassVar[bool] = False

    def __post_init__(self):
        if not isinstance(self.offset, (bytes, bytearray)) or len(self.offset) != 3:
            raise MalformedOffset(f"Offset must be exactly 3 bytes, got {self.offset!r}")
        if bytes(self.offset) == IPS_EOF:
            raise ReservedOffset("Offset 0x454F46 is the reserved EOF marker")
        object.__setattr__(self, "offset", bytes(self.offset))
        object.__setattr__(self, "data", bytes(self.data))

    @property
    def address(self) -> int:
        return int.from_bytes(self.offset, "big")

    def validate(self) -> None:
        if self.offset == IPS_EOF:
            raise ReservedOffset("Offset 0x454F46 is the reserved EOF marker")
        if self.is_rle and len(self.data) > 1:
            raise RLEDataOverflow(f"RLE record @0x{self.address:06X} carries {len(self.data)} fill bytes, expected 1")
        if self.size < 1:
            raise ZeroSize(f"Record @0x{self.address:06X} has size 0")
        if self.size > MAX_SIZE:
            raise SizeOverflow(f"Record @0x{self.address:06X} size {self.size} exceeds 0x{MAX_SIZE:04X}")
        expected = 1 if self.is_rle else self.size
        if len(self.data) != expected:
            raise SizeMismatch(
                f"Record @0x{self.address:06X} has {len(self.data)} data bytes, expected {expected}",
                expected=expected,
                actual=len(self.data),
            )

    def encode(self) -> bytes:
        return self.offset + self.size.to_bytes(2, "big") + self.data

    def expected_bytes(self) -> bytes:
        """Bytes a target holds at this record's offset once it is applied."""
        return self.data

    def payload_for_apply(self) -> bytes:
        """Bytes written to the target at this record's offset."""
        return self.data

    def describe(self) -> str:
        return f"@0x{self.address:06X} literal size={self.size}"

    def write_to(self, sink: BinaryIO, log: logging.Logger | None = None) -> None:
        """Validate, then write the encoded record to sink.

        Nothing is written when validation fails.
        """
        self.validate()
        sink.write(self.encode())
        (log or logger).debug("Wrote record %s data=[%s]", self.describe(), self.data.hex(" "))


@dataclass(frozen=True)
class LiteralRecord(PatchRecord):
    """A run of bytes copied verbatim to the target."""

    @classmethod
    def at(cls, address: int, data: bytes) -> "LiteralRecord":
        return cls(offset_from_address(address), len(data), data)


@dataclass(frozen=True)
class RLERecord(PatchRecord):
    """A single fill byte repeated at the target.

    Applying writes the fill byte size + 1 times: legacy IPS appliers treat the
    count as an inclusive upper bound and patches in the wild depend on it.
    Verification compares only size bytes.
    """

    is_rle: ClassVar[bool] = True

    @classmethod
    def at(cls, address: int, count: int, fill: int) -> "RLERecord":
        return cls(offset_from_address(address), count, bytes([fill]))

    @property
    def fill(self) -> int:
        return self.data[0]

    def encode(self) -> bytes:
        return self.offset + RLE_SENTINEL + self.size.to_bytes(2, "big") + self.data

    def expected_bytes(self) -> bytes:
        return self.data * self.size

    def payload_for_apply(self) -> bytes:
        return self.data * (self.size + 1)

    def describe(self) -> str:
        return f"@0x{self.address:06X} rle count={self.size}"


def new_record(offset: bytes, size: int, data: bytes, rle: bool = False) -> PatchRecord:
    """Build the record variant selected by the rle tag."""
    if rle:
        return RLERecord(offset, size, data)
    return LiteralRecord(offset, size, data)
