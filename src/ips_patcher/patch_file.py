"""IPS patch files: decode, write, apply and check.

A patch is fully decoded into memory before anything touches a target. Targets
and sinks are binary file-like objects (seek/read/write/truncate), so an
io.BytesIO works as well as an open file.
"""
import io
import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator

from .errors import BadHeader, ContentMismatch, PatchIOError, SizeMismatch, TrailingData, TruncatedStream
from .patch_record import IPS_EOF, IPS_HEADER, MAX_SIZE, PatchRecord, new_record

logger = logging.getLogger(__name__)


def _read_exact(source: BinaryIO, n: int, what: str) -> bytes:
    try:
        chunk = source.read(n)
    except OSError as e:
        raise PatchIOError(f"Failed reading {what}", cause=e, phase="decode") from e
    if len(chunk) != n:
        raise TruncatedStream(f"Patch ended while reading {what} (wanted {n} bytes, got {len(chunk)})")
    return chunk


def _resize(target: BinaryIO, length: int) -> None:
    """Grow (zero-filled) or shrink target to exactly length bytes."""
    end = target.seek(0, os.SEEK_END)
    if end < length:
        target.write(b"\x00" * (length - end))
    elif end > length:
        target.truncate(length)


class PatchFile:
    """An ordered list of PatchRecord plus an optional truncate length.

    truncate == 0 means no truncation; a real zero-length target cannot be
    expressed in the format.
    """

    def __init__(self, records: Iterable[PatchRecord] | None = None, truncate: int = 0, log: logging.Logger | None = None):
        self.records: list[PatchRecord] = list(records or [])
        self.truncate = truncate
        self.log = log or logger

    @property
    def truncate(self) -> int:
        return self._truncate

    @truncate.setter
    def truncate(self, value: int) -> None:
        if not 0 <= value <= MAX_SIZE:
            raise ValueError(f"truncate must fit in 16 bits, got {value}")
        self._truncate = value

    def __repr__(self):
        return "<PatchFile: %d records, truncate=%d>" % (len(self.records), self.truncate)

    def __len__(self):
        return len(self.records)

    def __iter__(self) -> Iterator[PatchRecord]:
        return iter(self.records)

    def __eq__(self, other):
        if not isinstance(other, PatchFile):
            return NotImplemented
        return self.records == other.records and self.truncate == other.truncate

    def append(self, record: PatchRecord) -> None:
        self.records.append(record)

    # --- decode ---

    @classmethod
    def decode(cls, source: BinaryIO, log: logging.Logger | None = None) -> "PatchFile":
        """Parse an IPS stream into a PatchFile.

        Raises BadHeader, TruncatedStream, TrailingData, or the RecordError of
        the first invalid record.
        """
        log = log or logger
        try:
            header = source.read(len(IPS_HEADER))
        except OSError as e:
            raise PatchIOError("Failed reading header", cause=e, phase="decode") from e
        if header != IPS_HEADER:
            raise BadHeader(f"Invalid header {header!r}, expected {IPS_HEADER!r}")

        patch = cls(log=log)
        while True:
            offset = _read_exact(source, 3, f"offset of record {len(patch.records)}")
            if offset == IPS_EOF:
                break
            size = int.from_bytes(_read_exact(source, 2, "record size"), "big")
            rle = size == 0
            if rle:
                size = int.from_bytes(_read_exact(source, 2, "RLE count"), "big")
                data = _read_exact(source, 1, "RLE fill byte")
            else:
                data = _read_exact(source, size, "record data")
            record = new_record(offset, size, data, rle)
            record.validate()
            log.debug("Read record %d %s", len(patch.records), record.describe())
            patch.records.append(record)

        # Optional truncate extension
        try:
            tail = source.read(2)
            extra = source.read(16) if len(tail) == 2 else b""
        except OSError as e:
            raise PatchIOError("Failed reading past EOF marker", cause=e, phase="decode") from e
        if len(tail) == 1:
            raise TrailingData(f"Found a single byte past EOF: [{tail.hex()}]")
        if tail:
            patch.truncate = int.from_bytes(tail, "big")
            log.debug("Truncate extension: %d bytes", patch.truncate)
        if extra:
            raise TrailingData(f"Data found past EOF: [{extra.hex(' ')}]")
        return patch

    @classmethod
    def from_bytes(cls, data: bytes, log: logging.Logger | None = None) -> "PatchFile":
        return cls.decode(io.BytesIO(data), log=log)

    @classmethod
    def load(cls, path: str | Path, log: logging.Logger | None = None) -> "PatchFile":
        with open(path, "rb") as f:
            return cls.decode(f, log=log)

    # --- encode / write ---

    def write(self, sink: BinaryIO) -> None:
        """Overwrite sink with the encoded patch.

        Stops at the first invalid record; bytes already written stay.
        """
        try:
            sink.seek(0)
            sink.truncate(0)
            sink.write(IPS_HEADER)
        except OSError as e:
            raise PatchIOError("Failed writing header", cause=e, phase="write") from e
        for i, record in enumerate(self.records):
            try:
                record.write_to(sink, self.log)
            except OSError as e:
                raise PatchIOError("Failed writing record", cause=e, phase="write", record_index=i) from e
        try:
            sink.write(IPS_EOF)
            if self.truncate > 0:
                sink.write(self.truncate.to_bytes(2, "big"))
        except OSError as e:
            raise PatchIOError("Failed writing EOF marker", cause=e, phase="write") from e

    def encode(self) -> bytes:
        buf = io.BytesIO()
        self.write(buf)
        return buf.getvalue()

    def save(self, path: str | Path) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            self.write(f)

    # --- apply ---

    def apply(self, target: BinaryIO) -> None:
        """Apply every record in order, then the truncate length if set.

        Not transactional: an I/O failure leaves earlier records applied.
        """
        for record in self.records:
            record.validate()
        for i, record in enumerate(self.records):
            try:
                target.seek(record.address)
                target.write(record.payload_for_apply())
            except OSError as e:
                raise PatchIOError(f"Failed writing @0x{record.address:06X}", cause=e, phase="apply", record_index=i) from e
            self.log.debug("Applied record %d %s", i, record.describe())
        if self.truncate > 0:
            try:
                _resize(target, self.truncate)
            except OSError as e:
                raise PatchIOError(f"Failed resizing target to {self.truncate} bytes", cause=e, phase="apply") from e
            self.log.debug("Resized target to %d bytes", self.truncate)

    def apply_file(self, path: str | Path) -> None:
        with open(path, "r+b") as f:
            self.apply(f)

    # --- check ---

    def check(self, target: BinaryIO) -> None:
        """Verify that target already holds everything this patch writes.

        Raises SizeMismatch for a wrong target length and ContentMismatch for
        the first record whose bytes differ.
        """
        try:
            if self.truncate > 0:
                size = target.seek(0, os.SEEK_END)
                if size != self.truncate:
                    raise SizeMismatch(
                        f"Target is {size} bytes, patch expects {self.truncate}",
                        expected=self.truncate,
                        actual=size,
                    )
            for i, record in enumerate(self.records):
                expected = record.expected_bytes()
                target.seek(record.address)
                actual = target.read(len(expected))
                if actual != expected:
                    raise ContentMismatch(i, record.address, expected, actual)
        except OSError as e:
            raise PatchIOError("Failed reading target", cause=e, phase="check") from e

    def check_file(self, path: str | Path) -> None:
        with open(path, "rb") as f:
            self.check(f)

    def is_applied(self, target: BinaryIO) -> bool:
        try:
            self.check(target)
        except (SizeMismatch, ContentMismatch) as e:
            self.log.debug("Patch not applied: %s", e)
            return False
        return True
