"""
Output primitives: .crt header and CHIP package emission, raw binary output.

Both writers own the destination file for the duration of a ``with`` block.
If anything inside the block raises, the file is closed and removed so that
no half-written container is left behind.
"""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

from cartconv.core.context import ConversionContext
from cartconv.core.errors import ConversionError, ErrorKind
from cartconv.core.loader import (
    CHIP_HEADER_SIZE,
    CHIP_HEADER_STRUCT,
    CHIP_TAG,
    CRT_HEADER_SIZE,
    CRT_SIGNATURE,
)
from cartconv.core.types import CartridgeId

logger = logging.getLogger(__name__)

_CRT_VERSION_HI = 1
_NAME_LENGTH = 0x20


@dataclass(frozen=True)
class ChipRecord:
    """What was written for one CHIP package."""

    length: int
    bank: int
    address: int
    chip_type: int


def build_crt_header(cart_id: int, subtype: int, name: str, game: int, exrom: int) -> bytes:
    """Return the 64-byte .crt header.

    The version is 1.0, or 1.1 when a hardware subtype is recorded.
    """
    id_hi, id_lo = CartridgeId.encode(cart_id)
    encoded_name = name.upper().encode("ascii", errors="replace")[:_NAME_LENGTH]
    header = (
        CRT_SIGNATURE
        + struct.pack(">I", CRT_HEADER_SIZE)
        + bytes([
            _CRT_VERSION_HI,
            1 if subtype > 0 else 0,
            id_hi,
            id_lo,
            exrom,
            game,
            subtype & 0xFF,
        ])
        + bytes(5)
        + encoded_name.ljust(_NAME_LENGTH, b"\x00")
    )
    assert len(header) == CRT_HEADER_SIZE
    return header


class _OutputFile:
    """Destination file that is deleted again if the ``with`` block fails."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._fh: Optional[BinaryIO] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._fh is not None:
            self._fh.close()
            if exc_type is not None:
                self._discard()
        return False

    def _open(self) -> None:
        try:
            self._fh = open(self.path, "wb")
        except OSError as exc:
            raise ConversionError(ErrorKind.IoOpen, f"Can't open output file {self.path}") from exc

    def _write(self, data: bytes, what: str) -> None:
        if self._fh is None:
            self._open()
        try:
            written = self._fh.write(data)
        except OSError as exc:
            raise ConversionError(ErrorKind.IoWrite, f"Can't write {what} to file {self.path}") from exc
        if written != len(data):
            raise ConversionError(ErrorKind.IoWrite, f"Can't write {what} to file {self.path}")

    def _discard(self) -> None:
        try:
            os.unlink(self.path)
        except OSError:
            logger.warning("Could not remove partial output %s", self.path)
        else:
            logger.debug("Removed partial output %s", self.path)


class CrtWriter(_OutputFile):
    """Emits a .crt header and CHIP packages read from the context's image.

    Chip data is taken from ``ctx.image.data`` at ``ctx.cursor``, which
    advances with every emitted chip.
    """

    def __init__(self, ctx: ConversionContext) -> None:
        super().__init__(ctx.options.output)
        self.ctx = ctx
        self.chips: list[ChipRecord] = []

    def emit_header(self, game: int, exrom: int) -> None:
        """Create the output file and write the .crt header to it."""
        self._open()
        header = build_crt_header(
            self.ctx.cart_id, self.ctx.options.subtype, self.ctx.cart_name, game, exrom,
        )
        self._write(header, "crt header")

    def emit_chip(self, length: int, bank: int, address: int, chip_type: int) -> None:
        """Write one CHIP package of *length* bytes and advance the cursor."""
        start = self.ctx.cursor
        header = CHIP_HEADER_STRUCT.pack(CHIP_TAG, length + CHIP_HEADER_SIZE, chip_type, bank, address, length)
        self._write(header, "chip header")
        self._write(self.ctx.image.data[start:start + length].tobytes(), "data")
        self.ctx.cursor = start + length
        self.chips.append(ChipRecord(length, bank, address, chip_type))

    def skip(self, length: int) -> None:
        """Advance the cursor without writing anything."""
        self.ctx.cursor += length


class BinaryWriter(_OutputFile):
    """Writes the logical image as a raw .bin or a .prg with load address."""

    def __init__(self, ctx: ConversionContext) -> None:
        super().__init__(ctx.options.output)
        self.ctx = ctx

    def write(self, with_load_address: bool) -> int:
        """Write the image; returns the number of bytes written."""
        self._open()
        written = 0
        if with_load_address:
            address = self.ctx.image.load_address & 0xFFFF
            self._write(bytes([address & 0xFF, address >> 8]), "load address")
            written += 2
        payload = self.ctx.image.view()
        self._write(payload, "data")
        return written + len(payload)
