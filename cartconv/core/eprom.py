"""
EPROM-multiplexing cartridges: a fixed 8K base image plus user EPROMs.

The base image (first input) goes to bank 0 at $8000.  Every further input
is loaded into the same :class:`ConversionContext`, checked against the
rules of the board, and written as one or more chips behind it.

Boards
------
Dela EP64   -- up to four 32K EPROMs, raw binaries only.
Dela EP256  -- 8K images (raw or generic .crt) or 32K raw images, one kind.
Dela EP7x8  -- mix of 32K (first only), 16K and 8K images, 56K in total.
Rex EP256   -- eight slots; 8K images are packed 1, 2 or 4 per EPROM.
"""

from __future__ import annotations

import logging

import numpy as np

from cartconv.core.carts.descriptor import MultiplexKind
from cartconv.core.context import ConversionContext, FlatImage
from cartconv.core.errors import ConversionError, ErrorKind
from cartconv.core.loader import load_input_file
from cartconv.core.types import CartridgeId, ChipType, SIZE_16KB, SIZE_32KB, SIZE_8KB
from cartconv.core.writer import ChipRecord, CrtWriter

logger = logging.getLogger(__name__)

_BASE_ADDRESS = 0x8000

# Highest input count (base included) each board can take.
INPUT_LIMITS: dict[MultiplexKind, int] = {
    MultiplexKind.DELA_EP64: 5,
    MultiplexKind.DELA_EP256: 32,
    MultiplexKind.DELA_EP7X8: 8,
    MultiplexKind.REX_EP256: 32,
}

# Dela EP256 holds at most seven 32K EPROMs next to the base.
_EP256_MAX_32K_INPUTS = 8

# Dela EP7x8 has seven 8K slots next to the base.
_EP7X8_CAPACITY = 0xE000

_REX_LAST_SLOT = 8


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def encode_insertions(ctx: ConversionContext, kind: MultiplexKind) -> list[ChipRecord]:
    """Write the base image and all auxiliary inputs for board *kind*.

    Raises:
        ConversionError: ``WrongBaseSize`` if the base is not 8K, or any
        validation error of the board.  The output file is removed again.
    """
    if ctx.image.size != SIZE_8KB:
        raise ConversionError(
            ErrorKind.WrongBaseSize,
            f"wrong size of {kind.value} base file {ctx.base_name} ({ctx.image.size})",
        )
    if kind is not MultiplexKind.DELA_EP64 and len(ctx.options.inputs) == 1:
        raise ConversionError(ErrorKind.UnsupportedConversion, f"no files to insert into {kind.value} .crt")
    check_input_count(kind, len(ctx.options.inputs))

    with CrtWriter(ctx) as writer:
        writer.emit_header(1, 0)
        writer.emit_chip(SIZE_8KB, 0, _BASE_ADDRESS, ChipType.ROM)
        _INSERTERS[kind](ctx, writer)
    return writer.chips


def check_input_count(kind: MultiplexKind, count: int) -> None:
    """Raise ``TooManyInputs`` if *count* inputs exceed what *kind* can hold."""
    limit = INPUT_LIMITS[kind]
    if count > limit:
        raise ConversionError(
            ErrorKind.TooManyInputs,
            f"{kind.value} takes at most {limit - 1} files to insert ({count - 1} given)",
        )


def plan_packing(slots: int, files: int) -> int:
    """Return how many 8K images go into one Rex EP256 EPROM.

    *slots* is the number of free banks, *files* the number of images still
    to insert.  The smallest packing that fits all of them wins.

    Raises:
        ConversionError: ``NoRoomForInsertion`` if even 4 per EPROM won't fit.
    """
    if files > 4 * slots:
        raise ConversionError(ErrorKind.NoRoomForInsertion, "no room for the amount of input files given")
    if files > 2 * slots:
        return 4
    if files > slots:
        return 2
    return 1


# ---------------------------------------------------------------------------
# Boards
# ---------------------------------------------------------------------------

def _insert_dela_ep64(ctx: ConversionContext, writer: CrtWriter) -> None:
    for bank, path in enumerate(ctx.options.inputs[1:], start=1):
        image = _load_insertion(ctx, path)
        if image.is_crt:
            raise ConversionError(
                ErrorKind.UnsupportedConversion, "to be inserted file can only be a binary for Dela EP64",
            )
        if image.size != SIZE_32KB:
            raise ConversionError(
                ErrorKind.InvalidSize, "to be inserted file can only be 32KiB in size for Dela EP64",
            )
        writer.emit_chip(SIZE_32KB, bank, _BASE_ADDRESS, ChipType.ROM)
        ctx.reporter.line(f"inserted {path} in bank {bank} of the Dela EP64 .crt")


def _insert_dela_ep256(ctx: ConversionContext, writer: CrtWriter) -> None:
    insert_size = 0
    for index, path in enumerate(ctx.options.inputs[1:]):
        image = _load_insertion(ctx, path)
        if image.size not in (SIZE_32KB, SIZE_8KB):
            raise ConversionError(
                ErrorKind.InvalidSize,
                "only 32KiB binary files or 8KiB bin/crt files can be inserted in Dela EP256",
            )
        if insert_size == 0:
            insert_size = image.size
        if insert_size == SIZE_32KB and len(ctx.options.inputs) > _EP256_MAX_32K_INPUTS:
            raise ConversionError(
                ErrorKind.TooManyInputs,
                f"a maximum of {_EP256_MAX_32K_INPUTS - 1} 32KiB images can be inserted",
            )
        if image.size != insert_size:
            raise ConversionError(
                ErrorKind.MixedInsertionSizes,
                "only one type of insertion is allowed at this time for Dela EP256",
            )
        if image.is_crt and (
            image.size != SIZE_8KB or image.chip_address != _BASE_ADDRESS or image.is_ultimax
        ):
            raise ConversionError(
                ErrorKind.UnsupportedConversion, "you can only insert generic 8KiB .crt files for Dela EP256",
            )

        if insert_size == SIZE_32KB:
            first = index * 4 + 1
            for bank in range(first, first + 4):
                writer.emit_chip(SIZE_8KB, bank, _BASE_ADDRESS, ChipType.ROM)
            ctx.reporter.line(f"inserted {path} in banks {first}-{first + 3} of the Dela EP256 .crt")
        else:
            writer.emit_chip(SIZE_8KB, index + 1, _BASE_ADDRESS, ChipType.ROM)
            ctx.reporter.line(f"inserted {path} in bank {index + 1} of the Dela EP256 .crt")


def _insert_dela_ep7x8(ctx: ConversionContext, writer: CrtWriter) -> None:
    inserted = 0
    bank = 1
    for path in ctx.options.inputs[1:]:
        image = _load_insertion(ctx, path)

        if image.size == SIZE_32KB:
            if image.is_crt:
                raise ConversionError(
                    ErrorKind.UnsupportedConversion,
                    f"({path}) only binary 32KiB images can be inserted into a Dela EP7x8 .crt",
                )
            if inserted != 0:
                raise ConversionError(
                    ErrorKind.UnsupportedConversion,
                    f"({path}) only the first inserted image can be a 32KiB image for Dela EP7x8",
                )
            chips = 4
            banks_text = f"banks {bank}-{bank + 3}"
        elif image.size == SIZE_16KB:
            _require_generic_crt(image, path, "16KiB", "a Dela EP7x8")
            if inserted >= _EP7X8_CAPACITY - SIZE_8KB:
                raise ConversionError(
                    ErrorKind.NoRoomForInsertion,
                    f"({path}) no room to insert a 16KiB binary file into the Dela EP7x8 .crt",
                )
            chips = 2
            banks_text = f"banks {bank} and {bank + 1}"
        elif image.size == SIZE_8KB:
            _require_generic_crt(image, path, "8KiB", "a Dela EP7x8")
            if inserted >= _EP7X8_CAPACITY:
                raise ConversionError(
                    ErrorKind.NoRoomForInsertion,
                    f"({path}) no room to insert a 8KiB binary file into the Dela EP7x8 .crt",
                )
            chips = 1
            banks_text = f"bank {bank}"
        else:
            raise ConversionError(
                ErrorKind.InvalidSize,
                f"({path}) only 32KiB, 16KiB or 8KiB images can be inserted into a Dela EP7x8 .crt",
            )

        for _ in range(chips):
            writer.emit_chip(SIZE_8KB, bank, _BASE_ADDRESS, ChipType.ROM)
            bank += 1
        inserted += chips * SIZE_8KB
        ctx.reporter.line(f"inserted {path} in {banks_text} of the Dela EP7x8 .crt")


def _insert_rex_ep256(ctx: ConversionContext, writer: CrtWriter) -> None:
    inputs = ctx.options.inputs
    slot = 1
    packing = 0
    group: list[str] = []

    for index in range(1, len(inputs)):
        path = inputs[index]
        image = _load_insertion(ctx, path)
        if slot > _REX_LAST_SLOT:
            raise ConversionError(ErrorKind.NoRoomForInsertion, f"no more room for {path} in the Rex EP256 .crt")

        if image.size == SIZE_32KB:
            if image.is_crt:
                raise ConversionError(
                    ErrorKind.UnsupportedConversion,
                    f"({path}) only binary 32KiB images can be inserted into a Rex EP256 .crt",
                )
            if packing != 0:
                raise ConversionError(
                    ErrorKind.UnsupportedConversion,
                    f"({path}) only the first inserted images can be a 32KiB image for Rex EP256",
                )
            writer.emit_chip(SIZE_32KB, slot, _BASE_ADDRESS, ChipType.ROM)
            ctx.reporter.line(f"inserted {path} in bank {slot} as a 32KiB eprom of the Rex EP256 .crt")
            slot += 1
            continue

        if image.size != SIZE_8KB:
            raise ConversionError(
                ErrorKind.InvalidSize,
                f"({path}) only 32KiB or 8KiB images can be inserted into a Rex EP256 .crt",
            )
        _require_generic_crt(image, path, "8KiB", "a Rex EP256")

        if packing == 0:
            packing = plan_packing(_REX_LAST_SLOT + 1 - slot, len(inputs) - index)
            logger.info("Rex EP256: packing %d image(s) per eprom from bank %d", packing, slot)

        if packing == 1:
            writer.emit_chip(SIZE_8KB, slot, _BASE_ADDRESS, ChipType.ROM)
            ctx.reporter.line(f"inserted {path} as an 8KiB eprom in bank {slot} of the Rex EP256 .crt")
            slot += 1
            continue

        if not group:
            ctx.fill_scratch()
        position = len(group) * SIZE_8KB
        ctx.scratch[position:position + SIZE_8KB] = image.data[image.offset:image.offset + SIZE_8KB].tobytes()
        group.append(path)

        if len(group) == packing or index == len(inputs) - 1:
            length = packing * SIZE_8KB
            image.data[:length] = np.frombuffer(bytes(ctx.scratch[:length]), dtype=np.uint8)
            ctx.cursor = 0
            writer.emit_chip(length, slot, _BASE_ADDRESS, ChipType.ROM)
            ctx.reporter.line(
                f"inserted {_join_names(group)} as a {length // 1024}KiB eprom in bank {slot} of the Rex EP256 .crt"
            )
            slot += 1
            group = []


_INSERTERS = {
    MultiplexKind.DELA_EP64: _insert_dela_ep64,
    MultiplexKind.DELA_EP256: _insert_dela_ep256,
    MultiplexKind.DELA_EP7X8: _insert_dela_ep7x8,
    MultiplexKind.REX_EP256: _insert_rex_ep256,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_insertion(ctx: ConversionContext, path: str) -> FlatImage:
    image = load_input_file(ctx, path)
    ctx.cursor = image.offset
    logger.debug("Inserting %s (%r)", path, image)
    return image


def _require_generic_crt(image: FlatImage, path: str, size_text: str, board: str) -> None:
    if image.is_crt and (image.hardware_id != CartridgeId.CRT or image.is_ultimax):
        raise ConversionError(
            ErrorKind.UnsupportedConversion,
            f"({path}) only generic {size_text} .crt images can be inserted into {board} .crt",
        )


def _join_names(names: list[str]) -> str:
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} and {names[-1]}"
