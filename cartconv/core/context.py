"""
Per-conversion state: options, the flat memory image and scratch buffers.

One :class:`ConversionContext` is created for each conversion and passed to
the loader, the writer and the encoders.  Nothing survives between
conversions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from cartconv.core.logger import IReporter, NullReporter
from cartconv.core.types import EMPTY_BYTE, SIZE_32KB, SIZE_MAX

# Maximum cartridge plus a 2-byte load address prefix.
IMAGE_CAPACITY = SIZE_MAX + 2

DEFAULT_CART_NAME = "VICE CART"

MAX_INPUT_FILES = 32


@dataclass(frozen=True)
class ConversionOptions:
    """Everything the caller decided before the conversion starts.

    Attributes:
        inputs:           Ordered source files; the first one is the base.
        output:           Destination file.
        target:           ``-t`` token (``None`` = convert a .crt to binary).
        cart_name:        Name written to the .crt header.
        load_address:     Explicit load address for .prg output (0 = unset).
        subtype:          Hardware revision byte for the .crt header.
        repair:           Accept structurally broken .crt files where possible.
        pad:              Accept binaries of non-standard size and pad them.
        keep_empty_banks: Write EasyFlash banks that only contain $FF.
        quiet:            Suppress the summary and progress lines.
    """

    inputs: tuple[str, ...]
    output: str
    target: Optional[str] = None
    cart_name: Optional[str] = None
    load_address: int = 0
    subtype: int = 0
    repair: bool = False
    pad: bool = False
    keep_empty_banks: bool = False
    quiet: bool = False


class FlatImage:
    """The flat memory image plus what the loader learned about it.

    ``data`` always holds ``IMAGE_CAPACITY`` bytes; the logical image is
    ``data[offset:offset + size]`` and everything behind it stays $FF.
    """

    def __init__(self) -> None:
        self.data = np.full(IMAGE_CAPACITY, EMPTY_BYTE, dtype=np.uint8)
        self.header = bytearray(0x40)
        self.reset()

    def reset(self) -> None:
        self.data.fill(EMPTY_BYTE)
        self.header[:] = bytes(0x40)
        self.size: int = 0
        self.offset: int = 0
        self.is_crt: bool = False
        self.is_ultimax: bool = False
        self.hardware_id: int = 0
        self.load_address: int = 0
        # Load address of the first CHIP package (0 for raw binaries).
        self.chip_address: int = 0

    def view(self) -> bytes:
        """Return the logical image as bytes."""
        return self.data[self.offset:self.offset + self.size].tobytes()

    def is_empty(self, start: int, length: int) -> bool:
        """True if ``data[start:start + length]`` only holds erased bytes."""
        return bool(np.all(self.data[start:start + length] == EMPTY_BYTE))

    def __repr__(self) -> str:
        kind = "crt" if self.is_crt else "bin"
        return f"FlatImage({kind}, size=0x{self.size:x}, offset={self.offset}, id={self.hardware_id})"


@dataclass
class ConversionContext:
    """Mutable state owned by exactly one conversion."""

    options: ConversionOptions
    reporter: IReporter = field(default_factory=NullReporter)
    image: FlatImage = field(default_factory=FlatImage)
    scratch: bytearray = field(default_factory=lambda: bytearray([EMPTY_BYTE]) * SIZE_32KB)
    cart_id: int = 0
    ultimax: bool = False
    # Cursor into image.data used by CrtWriter.emit_chip().
    cursor: int = 0

    @property
    def base_name(self) -> str:
        return self.options.inputs[0]

    @property
    def cart_name(self) -> str:
        return self.options.cart_name if self.options.cart_name is not None else DEFAULT_CART_NAME

    def fill_scratch(self) -> None:
        self.scratch[:] = bytes([EMPTY_BYTE]) * SIZE_32KB
