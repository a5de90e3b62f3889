"""Exception hierarchy for IPS decoding, validation, verification and I/O."""


class IPSError(Exception):
    """Base class for every failure raised by ips_patcher."""


# Decode-time framing errors

class DecodeError(IPSError):
    pass


class BadHeader(DecodeError):
    pass


class TruncatedStream(DecodeError):
    pass


class TrailingData(DecodeError):
    pass


# Record validation errors

class RecordError(IPSError):
    pass


class MalformedOffset(RecordError):
    pass


class ReservedOffset(RecordError):
    pass


class RLEDataOverflow(RecordError):
    pass


class ZeroSize(RecordError):
    pass


class SizeOverflow(RecordError):
    pass


class SizeMismatch(IPSError):
    """A length disagrees with the one it must match.

    Raised by record validation when a literal payload does not match its size
    field, and by verification when the target length differs from the patch's
    truncate value.
    """

    def __init__(self, message: str, expected: int | None = None, actual: int | None = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


# Verify-time errors

class VerifyError(IPSError):
    pass


class ContentMismatch(VerifyError):
    def __init__(self, index: int, address: int, expected: bytes, actual: bytes):
        self.index = index
        self.address = address
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Record {index} @0x{address:06X}: expected [{expected.hex(' ')}], found [{actual.hex(' ')}]"
        )


class PatchIOError(IPSError):
    """An I/O failure on the patch or target resource.

    phase: one of "decode", "write", "apply", "check"
    record_index: index of the record being processed, if any
    """

    def __init__(self, message: str, cause: Exception | None = None, phase: str | None = None, record_index: int | None = None):
        self.cause = cause
        self.phase = phase
        self.record_index = record_index
        if phase:
            message = f"[{phase}] " + message
        if record_index is not None:
            message += f" (record {record_index})"
        if cause:
            message += ": " + repr(cause)
        super().__init__(message)
