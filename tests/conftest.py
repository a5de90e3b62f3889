"""Shared fixtures: small IPS streams and in-memory targets."""

import io

import pytest

from ips_patcher.patch_file import PatchFile
from ips_patcher.patch_record import LiteralRecord, RLERecord

LITERAL_PATCH = b"PATCH" + b"\x00\x00\x10" + b"\x00\x03" + b"\xAA\xBB\xCC" + b"EOF"
RLE_PATCH = b"PATCH" + b"\x00\x00\x00" + b"\x00\x00" + b"\x00\x04" + b"\xFF" + b"EOF"
TRUNCATE_PATCH = LITERAL_PATCH + b"\x00\x64"


class FailingTarget(io.BytesIO):
    """BytesIO whose write() raises after a number of successful writes."""

    def __init__(self, initial: bytes, fail_after: int):
        super().__init__(initial)
        self.fail_after = fail_after
        self.writes = 0

    def write(self, data):
        if self.writes >= self.fail_after:
            raise OSError(28, "No space left on device")
        self.writes += 1
        return super().write(data)


@pytest.fixture
def mixed_patch() -> PatchFile:
    return PatchFile(
        [
            LiteralRecord.at(0x10, b"\x01\x02\x03\x04"),
            RLERecord.at(0x20, 6, 0x7E),
            LiteralRecord.at(0x28, b"\xEE"),
        ],
        truncate=0x40,
    )


@pytest.fixture
def blank_target() -> io.BytesIO:
    return io.BytesIO(bytes(0x30))
