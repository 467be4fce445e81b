"""
Top-level conversion service for cartconv.

Loads the first input, decides the direction of the conversion and hands
the image to the raw binary writer or to the encoder of the target
hardware.

Typical usage::

    options = ConversionOptions(inputs=("game.bin",), output="game.crt", target="ocean")
    result = CartConverter.convert(options, ConsoleReporter())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cartconv.core.carts.descriptor import CartDescriptor, Multiplexing
from cartconv.core.carts.table import TargetSelection, get_descriptor, resolve_target
from cartconv.core.context import MAX_INPUT_FILES, ConversionContext, ConversionOptions
from cartconv.core.encoders import encode
from cartconv.core.eprom import check_input_count
from cartconv.core.errors import ConversionError, ErrorKind
from cartconv.core.loader import load_input_file
from cartconv.core.logger import DEFAULT_REPORTER, IReporter
from cartconv.core.types import CartridgeId, SIZE_MAX
from cartconv.core.writer import BinaryWriter, ChipRecord

logger = logging.getLogger(__name__)


class Direction(Enum):
    BINARY_TO_CRT = "bin->crt"
    CRT_TO_BINARY = "crt->bin"


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of a successful conversion."""

    direction: Direction
    output: str
    cart_id: int
    cart_name: str
    size: int
    chips: tuple[ChipRecord, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class CartConverter:
    """Run one conversion described by a :class:`ConversionOptions`."""

    @staticmethod
    def convert(options: ConversionOptions, reporter: Optional[IReporter] = None) -> ConversionResult:
        """Convert ``options.inputs`` to ``options.output``.

        Parameters
        ----------
        options:
            What to convert and how.
        reporter:
            Receives the summary and insertion progress lines.  Defaults to
            :class:`NullReporter`; quiet mode always uses it.

        Returns
        -------
        ConversionResult

        Raises
        ------
        ConversionError
            On any failure.  A partially written output file is removed.
        """
        if reporter is None or options.quiet:
            reporter = DEFAULT_REPORTER

        CartConverter._check_paths(options)
        selection = resolve_target(options.target) if options.target is not None else TargetSelection(None)

        ctx = ConversionContext(options=options, reporter=reporter)
        if selection.cart_id is not None:
            ctx.cart_id = selection.cart_id
        ctx.ultimax = selection.ultimax

        logger.info("Loading %s", ctx.base_name)
        image = load_input_file(ctx, ctx.base_name)
        CartConverter._check_input_count(options, selection, image.hardware_id if image.is_crt else None)

        if image.is_crt:
            return CartConverter._from_crt(ctx, selection)
        return CartConverter._from_binary(ctx, selection)

    # -- directions --------------------------------------------------------

    @staticmethod
    def _from_crt(ctx: ConversionContext, selection: TargetSelection) -> ConversionResult:
        image = ctx.image
        if selection.to_binary:
            with BinaryWriter(ctx) as writer:
                written = writer.write(with_load_address=selection.to_prg)
            source = get_descriptor(image.hardware_id)
            CartConverter._report(ctx, f"Conversion from {source.name} .crt to binary format successful.")
            return ConversionResult(
                Direction.CRT_TO_BINARY, ctx.options.output, image.hardware_id, source.name, written,
            )

        info = get_descriptor(ctx.cart_id)
        if not info.accepts_insertions:
            raise ConversionError(ErrorKind.AlreadyContainer, "File is already .crt format")
        # A .crt base is the base image of the multiplexing board.
        return CartConverter._encode(ctx, info)

    @staticmethod
    def _from_binary(ctx: ConversionContext, selection: TargetSelection) -> ConversionResult:
        if selection.to_binary:
            raise ConversionError(ErrorKind.AlreadyBinary, "File is already in binary format")

        info = get_descriptor(ctx.cart_id)
        image = ctx.image
        if not info.accepts_size(image.size):
            if not ctx.options.pad:
                raise ConversionError(
                    ErrorKind.InvalidSize,
                    f"Input file size ({image.size}) doesn't match {info.name} requirements",
                )
            padded = pad_size(image.size, info.sizes)
            logger.info("Padding %s from %d to %d bytes", ctx.base_name, image.size, padded)
            image.size = padded
        return CartConverter._encode(ctx, info)

    @staticmethod
    def _encode(ctx: ConversionContext, info: CartDescriptor) -> ConversionResult:
        chips = encode(ctx, info)
        CartConverter._report(ctx, f"Conversion from binary format to {info.name} .crt successful.")
        return ConversionResult(
            Direction.BINARY_TO_CRT,
            ctx.options.output,
            ctx.cart_id,
            info.name,
            sum(chip.length for chip in chips),
            tuple(chips),
        )

    # -- checks ------------------------------------------------------------

    @staticmethod
    def _check_paths(options: ConversionOptions) -> None:
        if not options.inputs:
            raise ConversionError(ErrorKind.UnsupportedConversion, "no input filename")
        if not options.output:
            raise ConversionError(ErrorKind.UnsupportedConversion, "no output filename")
        if options.output == options.inputs[0]:
            raise ConversionError(ErrorKind.UnsupportedConversion, "output filename = input filename")
        if len(options.inputs) > MAX_INPUT_FILES:
            raise ConversionError(ErrorKind.TooManyInputs, "too many input files")

    @staticmethod
    def _check_input_count(
        options: ConversionOptions,
        selection: TargetSelection,
        source_id: Optional[int],
    ) -> None:
        """More than one input only makes sense for a multiplexing board."""
        count = len(options.inputs)
        if count == 1:
            return
        for cart_id in (selection.cart_id, source_id):
            if cart_id is None or not CartridgeId.is_container_id(cart_id):
                continue
            strategy = get_descriptor(cart_id).strategy
            if isinstance(strategy, Multiplexing):
                check_input_count(strategy.kind, count)
                return
        raise ConversionError(ErrorKind.TooManyInputs, "too many input files")

    @staticmethod
    def _report(ctx: ConversionContext, summary: str) -> None:
        ctx.reporter.line(f"Input file : {ctx.base_name}")
        ctx.reporter.line(f"Output file : {ctx.options.output}")
        ctx.reporter.line(summary)


# ---------------------------------------------------------------------------
# Padding
# ---------------------------------------------------------------------------

def pad_size(size: int, sizes: int) -> int:
    """Smallest size >= *size* whose bits are all set in the mask *sizes*.

    Raises:
        ConversionError: ``InvalidSize`` if the mask allows nothing that big.
    """
    best = None
    # Walk every submask of ``sizes``.
    candidate = sizes
    while True:
        if size <= candidate <= SIZE_MAX and (best is None or candidate < best):
            best = candidate
        if candidate == 0:
            break
        candidate = (candidate - 1) & sizes
    if best is None:
        raise ConversionError(ErrorKind.InvalidSize, f"Input file size ({size}) can't be padded to a legal size")
    return best
