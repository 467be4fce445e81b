"""
Error kinds raised by the conversion engine.
"""

from enum import Enum


class ErrorKind(Enum):
    IoOpen = "io-open"
    IoRead = "io-read"
    IoWrite = "io-write"
    MalformedHeader = "malformed-header"
    BadChipTag = "bad-chip-tag"
    ChunkSizeMismatch = "chunk-size-mismatch"
    TruncatedStream = "truncated-stream"
    UnexpectedEof = "unexpected-eof"
    UnknownHardwareId = "unknown-hardware-id"
    InvalidSize = "invalid-size"
    UnsupportedConversion = "unsupported-conversion"
    AlreadyContainer = "already-container"
    AlreadyBinary = "already-binary"
    TooManyInputs = "too-many-inputs"
    NoRoomForInsertion = "no-room-for-insertion"
    MixedInsertionSizes = "mixed-insertion-sizes"
    WrongBaseSize = "wrong-base-size"


# Loader conditions that repair mode turns into warnings.
REPAIRABLE: frozenset[ErrorKind] = frozenset({
    ErrorKind.MalformedHeader,
    ErrorKind.ChunkSizeMismatch,
    ErrorKind.UnexpectedEof,
})


class ConversionError(RuntimeError):
    """A conversion step failed.

    Attributes:
        kind:    The :class:`ErrorKind` that classifies the failure.
        message: Human-readable description, printed by the CLI.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"ConversionError({self.kind.name}, {self.message!r})"
