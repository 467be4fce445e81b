"""
Per-variant .crt encoders.

:func:`encode` looks at the descriptor's :class:`EncodingStrategy` and splits
the flat image in ``ctx.image`` into CHIP packages accordingly.  All encoders
read chip data through the context cursor, which starts at the image offset
(past a stripped load address prefix).

Layouts
-------
RegularBanked    -- N equal banks at one address.
SplitBlock       -- two fixed 8K sockets ($8000 + $A000 or $E000).
Interleaved      -- EasyFlash, 64 x ($8000, $A000), empty halves dropped.
FixedLayout      -- hand-specified chip lists (Zaxxon, Stardos, ...).
ShiftedBanked    -- Final Cartridge Plus 24K/32K dumps.
SizeConditional  -- Ocean; 256K images get a two-halves layout.
Generic          -- generic 8K/16K game and ultimax cartridges.
Multiplexing     -- see :mod:`cartconv.core.eprom`.
"""

from __future__ import annotations

import logging

from cartconv.core.carts.descriptor import (
    CartDescriptor,
    FixedLayout,
    Generic,
    Interleaved,
    Multiplexing,
    RegularBanked,
    ShiftedBanked,
    SizeConditional,
    SplitBlock,
)
from cartconv.core.context import ConversionContext
from cartconv.core.eprom import encode_insertions
from cartconv.core.errors import ConversionError, ErrorKind
from cartconv.core.types import (
    EMPTY_BYTE,
    ChipType,
    SIZE_12KB,
    SIZE_16KB,
    SIZE_2KB,
    SIZE_4KB,
    SIZE_8KB,
)
from cartconv.core.writer import ChipRecord, CrtWriter

logger = logging.getLogger(__name__)

_BLOCK = 0x2000


def encode(ctx: ConversionContext, info: CartDescriptor) -> list[ChipRecord]:
    """Write ``ctx.image`` to ``ctx.options.output`` as a .crt for *info*.

    Returns:
        The chips that were written, in file order.

    Raises:
        ConversionError: ``UnsupportedConversion`` if the variant has no
        encoder, or whatever the selected encoder raises.
    """
    ctx.cursor = ctx.image.offset
    strategy = info.strategy
    logger.debug("Encoding %s with %r", info.name, strategy)

    match strategy:
        case RegularBanked():
            return save_regular(
                ctx, info.bank_size, info.banks, info.load_address, info.data_type, info.game, info.exrom,
            )
        case SplitBlock(high_address=high_address):
            return save_two_blocks(ctx, high_address, info.game, info.exrom)
        case Interleaved():
            return save_interleaved(ctx, strategy)
        case FixedLayout():
            return save_fixed(ctx, strategy, info.data_type)
        case ShiftedBanked():
            return save_shifted(ctx, strategy, info)
        case SizeConditional():
            return save_size_conditional(ctx, strategy, info)
        case Generic():
            return save_generic(ctx, info)
        case Multiplexing(kind=kind):
            return encode_insertions(ctx, kind)
        case _:
            raise ConversionError(
                ErrorKind.UnsupportedConversion,
                f"Conversion to {info.name} .crt is not supported",
            )


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------

def save_regular(
    ctx: ConversionContext,
    length: int,
    banks: int,
    address: int,
    chip_type: int,
    game: int,
    exrom: int,
) -> list[ChipRecord]:
    """Split the image into equal banks of *length* bytes at *address*.

    With ``banks == 0`` the count follows from the image size.  An image of
    exactly half or a quarter of *length* is a smaller chip on otherwise
    identical hardware and is written as a single shorter bank.
    """
    size = ctx.image.size
    if banks == 0:
        if size == length // 2:
            length //= 2
        elif size == length // 4:
            length //= 4
        banks = size // length

    with CrtWriter(ctx) as writer:
        writer.emit_header(game, exrom)
        for bank in range(banks):
            writer.emit_chip(length, bank, address, chip_type)
    return writer.chips


def save_two_blocks(ctx: ConversionContext, high_address: int, game: int, exrom: int) -> list[ChipRecord]:
    high = 0xE000 if high_address == 0xE000 else 0xA000
    with CrtWriter(ctx) as writer:
        writer.emit_header(game, exrom)
        writer.emit_chip(_BLOCK, 0, 0x8000, ChipType.ROM)
        writer.emit_chip(_BLOCK, 0, high, ChipType.ROM)
    return writer.chips


def save_interleaved(ctx: ConversionContext, layout: Interleaved) -> list[ChipRecord]:
    omit_empty = not ctx.options.keep_empty_banks
    with CrtWriter(ctx) as writer:
        writer.emit_header(0, 0)
        for bank in range(layout.banks):
            for address in (0x8000, 0xA000):
                if omit_empty and ctx.image.is_empty(ctx.cursor, layout.half_size):
                    writer.skip(layout.half_size)
                else:
                    writer.emit_chip(layout.half_size, bank, address, ChipType.FLASH)
    logger.info("EasyFlash: wrote %d of %d banks", len(writer.chips), layout.banks * 2)
    return writer.chips


def save_fixed(ctx: ConversionContext, layout: FixedLayout, chip_type: int) -> list[ChipRecord]:
    with CrtWriter(ctx) as writer:
        writer.emit_header(layout.game, layout.exrom)
        for chip in layout.chips:
            writer.emit_chip(chip.length, chip.bank, chip.address, chip_type)
    return writer.chips


def save_shifted(ctx: ConversionContext, layout: ShiftedBanked, info: CartDescriptor) -> list[ChipRecord]:
    image = ctx.image
    if image.size != layout.full_size:
        start = image.offset
        keep = layout.full_size - layout.shift
        image.data[start + layout.shift:start + layout.full_size] = image.data[start:start + keep].copy()
        image.data[start:start + layout.shift] = EMPTY_BYTE
        image.size = layout.full_size
    return save_regular(
        ctx, info.bank_size, info.banks, info.load_address, info.data_type, info.game, info.exrom,
    )


def save_size_conditional(ctx: ConversionContext, layout: SizeConditional, info: CartDescriptor) -> list[ChipRecord]:
    if ctx.image.size != layout.split_size:
        return save_regular(ctx, info.bank_size, 0, layout.low_address, info.data_type, info.game, info.exrom)

    with CrtWriter(ctx) as writer:
        writer.emit_header(layout.split_game, layout.split_exrom)
        for bank in range(layout.half_banks):
            writer.emit_chip(info.bank_size, bank, layout.low_address, info.data_type)
        for bank in range(layout.half_banks):
            writer.emit_chip(info.bank_size, bank + layout.half_banks, layout.high_address, info.data_type)
    return writer.chips


# ---------------------------------------------------------------------------
# Generic cartridges
# ---------------------------------------------------------------------------

# size -> load address for single-chip ultimax images
_ULTIMAX_SINGLE = {
    SIZE_2KB: 0xF800,
    SIZE_4KB: 0xF000,
    SIZE_8KB: 0xE000,
}


def save_generic(ctx: ConversionContext, info: CartDescriptor) -> list[ChipRecord]:
    """Generic game or ultimax cartridge; the layout follows the image size.

    The normal layout keeps the descriptor's initial mode lines, which are
    the 8K game configuration (unverified for 12K/16K images, see table).
    """
    size = ctx.image.size
    if ctx.ultimax:
        if size in _ULTIMAX_SINGLE:
            return save_regular(ctx, size, 1, _ULTIMAX_SINGLE[size], ChipType.ROM, 0, 1)
        if size == SIZE_16KB:
            return save_two_blocks(ctx, 0xE000, 0, 1)
        raise ConversionError(ErrorKind.InvalidSize, "invalid size for generic ultimax cartridge")

    if size in (SIZE_2KB, SIZE_4KB, SIZE_8KB, SIZE_12KB, SIZE_16KB):
        return save_regular(ctx, size, 1, 0x8000, ChipType.ROM, info.game, info.exrom)
    raise ConversionError(ErrorKind.InvalidSize, "invalid size for generic cartridge")
