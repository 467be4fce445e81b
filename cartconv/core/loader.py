"""
Input loading for cartconv.

Responsibilities:
  - Tell a .crt container from a raw binary by its 16-byte signature.
  - Parse the 64-byte .crt header (hardware id, mode lines, name).
  - Concatenate all CHIP packages of a .crt into the flat image, or place
    EasyFlash chips by bank.
  - Validate raw binary sizes and strip a load address prefix.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO

import numpy as np

from cartconv.core.context import IMAGE_CAPACITY, ConversionContext, FlatImage
from cartconv.core.errors import REPAIRABLE, ConversionError, ErrorKind
from cartconv.core.types import (
    CartridgeId,
    LEGAL_SIZES,
    SIZE_1024KB,
    SIZE_32KB,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# .crt layout constants
# ---------------------------------------------------------------------------

CRT_SIGNATURE: bytes = b"C64 CARTRIDGE   "
CRT_HEADER_SIZE: int = 0x40
CHIP_TAG: bytes = b"CHIP"
CHIP_HEADER_SIZE: int = 0x10

# tag, total length, type, bank, load address, data length
CHIP_HEADER_STRUCT = struct.Struct(">4sIHHHH")

# Offsets inside the .crt header
_HDR_LENGTH = 0x10
_HDR_VERSION_HI = 0x14
_HDR_VERSION_LO = 0x15
_HDR_ID_HI = 0x16
_HDR_ID_LO = 0x17
_HDR_EXROM = 0x18
_HDR_GAME = 0x19
_HDR_SUBTYPE = 0x1A
_HDR_NAME = 0x20
_HDR_NAME_LEN = 0x20

# EasyFlash chips are always 8K, placed as two halves of a 16K bank.
_EASYFLASH_CHIP_SIZE = 0x2000
_EASYFLASH_BANK_SIZE = 0x4000


# ---------------------------------------------------------------------------
# Parsed headers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CrtHeader:
    """Parsed contents of a .crt container header."""

    header_length: int
    version: tuple[int, int]
    hardware_id: int
    exrom: int
    game: int
    subtype: int
    name: str

    @property
    def is_ultimax(self) -> bool:
        return self.exrom == 1 and self.game == 0

    @property
    def mode_name(self) -> str:
        if self.exrom == 1 and self.game == 0:
            return "ultimax"
        if self.exrom == 0 and self.game == 0:
            return "16k Game"
        if self.exrom == 0 and self.game == 1:
            return "8k Game"
        return "?"

    @staticmethod
    def parse(header_bytes: bytes) -> "CrtHeader":
        """Parse the first 64 bytes of a .crt file."""
        header_length = struct.unpack_from(">I", header_bytes, _HDR_LENGTH)[0]
        name = (
            bytes(header_bytes[_HDR_NAME:_HDR_NAME + _HDR_NAME_LEN])
            .split(b"\x00", 1)[0]
            .decode("ascii", errors="replace")
        )
        return CrtHeader(
            header_length=header_length,
            version=(header_bytes[_HDR_VERSION_HI], header_bytes[_HDR_VERSION_LO]),
            hardware_id=CartridgeId.decode(header_bytes[_HDR_ID_HI], header_bytes[_HDR_ID_LO]),
            exrom=header_bytes[_HDR_EXROM],
            game=header_bytes[_HDR_GAME],
            subtype=header_bytes[_HDR_SUBTYPE],
            name=name,
        )


@dataclass(frozen=True)
class ChipHeader:
    """One 16-byte CHIP package header."""

    tag: bytes
    total_length: int
    chip_type: int
    bank: int
    load_address: int
    data_length: int

    @staticmethod
    def parse(raw: bytes) -> "ChipHeader":
        return ChipHeader(*CHIP_HEADER_STRUCT.unpack(raw))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_input_file(ctx: ConversionContext, path: str) -> FlatImage:
    """Load *path* into ``ctx.image``, resetting it first.

    Raises:
        ConversionError: ``IoOpen`` if the file cannot be opened, or any of
        the structural kinds raised by :func:`load_stream`.
    """
    try:
        fh = open(path, "rb")
    except OSError as exc:
        raise ConversionError(ErrorKind.IoOpen, f"Can't open {path}") from exc
    with fh:
        return load_stream(ctx, fh, path)


def load_stream(ctx: ConversionContext, stream: BinaryIO, name: str = "<stream>") -> FlatImage:
    """Load a .crt or raw binary from *stream* into ``ctx.image``."""
    image = ctx.image
    image.reset()
    image.load_address = ctx.options.load_address

    first = _read(stream, len(CRT_SIGNATURE), name)
    if len(first) != len(CRT_SIGNATURE):
        raise ConversionError(ErrorKind.IoRead, f"Can't read {name}")

    if first == CRT_SIGNATURE:
        _load_crt(ctx, stream, first, name)
    else:
        _load_raw(ctx, stream, first, name)

    logger.debug("Loaded %s: %r", name, image)
    return image


# ---------------------------------------------------------------------------
# .crt containers
# ---------------------------------------------------------------------------

def _load_crt(ctx: ConversionContext, stream: BinaryIO, first: bytes, name: str) -> None:
    image = ctx.image
    image.is_crt = True

    rest = _read(stream, CRT_HEADER_SIZE - len(first), name)
    if len(rest) != CRT_HEADER_SIZE - len(first):
        raise ConversionError(ErrorKind.IoRead, f"Can't read the full header of {name}")
    image.header[:] = first + rest
    header = CrtHeader.parse(image.header)

    if header.header_length != CRT_HEADER_SIZE:
        _fail_or_warn(ctx, ErrorKind.MalformedHeader, f"Illegal header size in {name}")

    image.is_ultimax = header.is_ultimax
    image.hardware_id = header.hardware_id
    if not CartridgeId.is_container_id(header.hardware_id):
        raise ConversionError(ErrorKind.UnknownHardwareId, f"Unknown CRT ID: {header.hardware_id}")

    if header.hardware_id == CartridgeId.EASYFLASH:
        _load_easyflash_banks(ctx, stream, name)
    else:
        _load_all_banks(ctx, stream, name)


def _read_chip_header(stream: BinaryIO, name: str):
    raw = _read(stream, CHIP_HEADER_SIZE, name)
    if len(raw) != CHIP_HEADER_SIZE:
        return None
    chip = ChipHeader.parse(raw)
    if chip.tag != CHIP_TAG:
        raise ConversionError(ErrorKind.BadChipTag, f"CHIP tag not found in {name}")
    return chip


def _load_all_banks(ctx: ConversionContext, stream: BinaryIO, name: str) -> None:
    """Append every chip payload to the image in file order."""
    image = ctx.image
    chips = 0

    while True:
        chip = _read_chip_header(stream, name)
        if chip is None:
            if chips == 0:
                raise ConversionError(ErrorKind.TruncatedStream, f"Could not read data from {name}")
            return
        chips += 1

        if chips == 1:
            image.chip_address = chip.load_address
        # The first chip decides the load address; good enough for .prg output.
        if image.load_address == 0:
            image.load_address = chip.load_address

        load_size = chip.data_length
        if chip.data_length + CHIP_HEADER_SIZE > chip.total_length:
            _fail_or_warn(
                ctx,
                ErrorKind.ChunkSizeMismatch,
                f"data size exceeds chunk length. (data:{chip.data_length:04x} chunk:{chip.total_length:04x})",
            )
            load_size = max(chip.total_length - CHIP_HEADER_SIZE, 0)

        if image.size + load_size > IMAGE_CAPACITY:
            raise ConversionError(ErrorKind.InvalidSize, f"{name} exceeds the maximum cartridge size")

        data = _read(stream, load_size, name)
        _store(image, image.size, data)
        if len(data) != load_size:
            _fail_or_warn(ctx, ErrorKind.UnexpectedEof, f"unexpected end of file in {name}")
            image.size += len(data)
            return

        pad = chip.total_length - (chip.data_length + CHIP_HEADER_SIZE)
        if pad > 0:
            logger.warning(
                "chunk length exceeds data size (data:%04x chunk:%04x), skipping %04x bytes.",
                chip.data_length, chip.total_length, pad,
            )
            _read(stream, pad, name)

        image.size += load_size


def _load_easyflash_banks(ctx: ConversionContext, stream: BinaryIO, name: str) -> None:
    """Place each 8K chip at ``bank * 16K``, in the low or high half by address."""
    image = ctx.image
    chips = 0

    while True:
        chip = _read_chip_header(stream, name)
        if chip is None:
            if chips == 0:
                raise ConversionError(ErrorKind.TruncatedStream, f"Could not read data from {name}")
            return
        chips += 1
        image.size = SIZE_1024KB

        if chips == 1:
            image.chip_address = chip.load_address
        if image.load_address == 0:
            image.load_address = chip.load_address

        position = chip.bank * _EASYFLASH_BANK_SIZE
        if (chip.load_address >> 8) != 0x80:
            position += _EASYFLASH_CHIP_SIZE
        if position + _EASYFLASH_CHIP_SIZE > SIZE_1024KB:
            raise ConversionError(ErrorKind.InvalidSize, f"EasyFlash bank {chip.bank} out of range in {name}")

        data = _read(stream, _EASYFLASH_CHIP_SIZE, name)
        _store(image, position, data)
        if len(data) != _EASYFLASH_CHIP_SIZE:
            _fail_or_warn(ctx, ErrorKind.UnexpectedEof, f"unexpected end of file in {name}")
            return


# ---------------------------------------------------------------------------
# Raw binaries
# ---------------------------------------------------------------------------

def _load_raw(ctx: ConversionContext, stream: BinaryIO, first: bytes, name: str) -> None:
    image = ctx.image
    data = first + _read(stream, IMAGE_CAPACITY - len(first), name)
    _store(image, 0, data)
    size = len(data)

    if size in LEGAL_SIZES:
        image.size = size
    elif size - 2 in LEGAL_SIZES:
        image.size = size - 2
        image.offset = 2
        if image.load_address == 0:
            image.load_address = data[0] | (data[1] << 8)
    elif size == SIZE_32KB + 4:
        image.size = size - 4
        image.offset = 4
    elif ctx.options.pad:
        image.size = size
        logger.info("Accepting non-standard size %d of %s", size, name)
    else:
        raise ConversionError(ErrorKind.InvalidSize, f"Illegal file size of {name}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fail_or_warn(ctx: ConversionContext, kind: ErrorKind, message: str) -> None:
    if ctx.options.repair and kind in REPAIRABLE:
        logger.warning("%s", message)
        return
    raise ConversionError(kind, f"{message} (use -r to force)")


def _read(stream: BinaryIO, size: int, name: str) -> bytes:
    try:
        return stream.read(size)
    except OSError as exc:
        raise ConversionError(ErrorKind.IoRead, f"Can't read {name}") from exc


def _store(image: FlatImage, position: int, data: bytes) -> None:
    if data:
        image.data[position:position + len(data)] = np.frombuffer(data, dtype=np.uint8)
