"""
Cartridge descriptors and the encoding strategies they select.

A :class:`CartDescriptor` describes one hardware variant: which flat-binary
sizes it accepts, its bank geometry, its initial mode lines and the
:class:`EncodingStrategy` that turns a flat image into chip packages.
Strategies are plain frozen dataclasses; the encoder module dispatches on
their type with ``match``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from cartconv.core.types import ChipType


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChipSpec:
    """One chip of a hand-specified layout."""

    length: int
    bank: int
    address: int


@dataclass(frozen=True)
class RegularBanked:
    """N equal banks at one address, N from the descriptor or the image size."""


@dataclass(frozen=True)
class SplitBlock:
    """Two 8K chips in bank 0, at $8000 and at *high_address*."""

    high_address: int = 0xA000


@dataclass(frozen=True)
class Interleaved:
    """EasyFlash: 64 banks of two 8K halves at $8000/$A000, empty halves dropped."""

    banks: int = 64
    half_size: int = 0x2000


@dataclass(frozen=True)
class FixedLayout:
    """A fixed chip sequence with its own header mode lines."""

    game: int
    exrom: int
    chips: tuple[ChipSpec, ...]


@dataclass(frozen=True)
class ShiftedBanked:
    """Regular banks, but a short image is moved up by *shift* bytes first.

    Used for Final Cartridge Plus, whose 24K dumps lack the (empty) first 8K.
    """

    full_size: int = 0x8000
    shift: int = 0x2000


@dataclass(frozen=True)
class SizeConditional:
    """Regular 8K banks, except for one image size that is split in two halves."""

    split_size: int
    half_banks: int = 16
    low_address: int = 0x8000
    high_address: int = 0xA000
    split_game: int = 1
    split_exrom: int = 0


@dataclass(frozen=True)
class Generic:
    """Generic 8K/16K game or ultimax cartridge, layout chosen by image size."""


class MultiplexKind(Enum):
    DELA_EP64 = "Dela EP64"
    DELA_EP256 = "Dela EP256"
    DELA_EP7X8 = "Dela EP7x8"
    REX_EP256 = "Rex EP256"


@dataclass(frozen=True)
class Multiplexing:
    """Base 8K image plus user EPROM images inserted into the remaining banks."""

    kind: MultiplexKind


EncodingStrategy = Union[
    RegularBanked,
    SplitBlock,
    Interleaved,
    FixedLayout,
    ShiftedBanked,
    SizeConditional,
    Generic,
    Multiplexing,
]


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CartDescriptor:
    """Static description of one cartridge hardware variant.

    Attributes:
        exrom, game:  Initial mode lines written to the .crt header.
        sizes:        Bitmask of flat-binary sizes the variant accepts.
        bank_size:    Size of one bank (0 for variants with custom layouts).
        load_address: Default chip load address.
        banks:        Bank count; 0 means "image size / bank size".
        data_type:    Chip type of the emitted packages.
        name:         Display name.
        option:       Command-line token, or None if not selectable.
        strategy:     How a flat image is encoded; None if unsupported.
    """

    exrom: int
    game: int
    sizes: int
    bank_size: int
    load_address: int
    banks: int
    data_type: ChipType
    name: str
    option: Optional[str]
    strategy: Optional[EncodingStrategy]

    @property
    def can_encode(self) -> bool:
        return self.strategy is not None

    @property
    def accepts_insertions(self) -> bool:
        return isinstance(self.strategy, Multiplexing)

    def accepts_size(self, size: int) -> bool:
        """Bitmask test: every bit of *size* must be a legal size bit."""
        return (size & self.sizes) == size
