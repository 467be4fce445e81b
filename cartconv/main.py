"""
cartconv -- convert cartridge images between raw binary and .crt format.

Command-line entry point.  Parses the arguments into a
:class:`ConversionOptions`, runs the conversion and maps failures to the
process exit code.

Usage examples::

    # Raw 16K dump to a generic .crt
    cartconv -i game.bin -o game.crt

    # Raw dump to a specific hardware type
    cartconv -t ocean -i ocean.bin -o ocean.crt -n "MY GAME"

    # .crt back to a .prg with load address
    cartconv -t prg -i game.crt -o game.prg

    # Insert EPROM images into a Dela EP256 base
    cartconv -t dep256 -i base.bin -i one.bin -i two.bin -o ep256.crt

    # Show the header and chip list of a .crt
    cartconv -f game.crt
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from cartconv import __version__
from cartconv.core.context import ConversionOptions
from cartconv.core.errors import ConversionError
from cartconv.core.logger import ConsoleReporter, NullReporter
from cartconv.shell.services.converter import CartConverter
from cartconv.shell.services.crt_info_service import CrtInfoService


# ---------------------------------------------------------------------------
# CLI definition
# ---------------------------------------------------------------------------

def _address(text: str) -> int:
    """Parse a load address given in decimal, ``0x`` hex or ``$`` hex."""
    try:
        if text.startswith("$"):
            value = int(text[1:], 16)
        else:
            value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid address: {text}") from None
    if not 0 <= value <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"address out of range: {text}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cartconv",
        description=(
            "Convert cartridge images between raw binary (.bin/.prg) and "
            "the .crt container format."
        ),
    )

    # Files
    parser.add_argument(
        "-i",
        dest="inputs",
        action="append",
        default=[],
        metavar="NAME",
        help="Input filename.  Repeat to insert extra images into multiplexing carts.",
    )
    parser.add_argument(
        "-o",
        dest="output",
        default=None,
        metavar="NAME",
        help="Output filename.",
    )

    # Target
    parser.add_argument(
        "-t",
        dest="target",
        default=None,
        metavar="TYPE",
        help="Output cart type (see --types).  Default: bin for .crt input, normal for binaries.",
    )
    parser.add_argument(
        "-n",
        dest="name",
        default=None,
        metavar="NAME",
        help="Cart name written to the .crt header.",
    )
    parser.add_argument(
        "-l",
        dest="load_address",
        type=_address,
        default=0,
        metavar="ADDR",
        help="Load address for .prg output.",
    )
    parser.add_argument(
        "-s",
        dest="subtype",
        type=int,
        default=0,
        metavar="REV",
        help="Output cart revision/subtype.",
    )

    # Behaviour
    parser.add_argument(
        "-r",
        dest="repair",
        action="store_true",
        default=False,
        help="Repair mode (accept broken input files).",
    )
    parser.add_argument(
        "-p",
        dest="pad",
        action="store_true",
        default=False,
        help="Accept non padded binaries as input.",
    )
    parser.add_argument(
        "-b",
        dest="keep_empty_banks",
        action="store_true",
        default=False,
        help="Output all banks (do not optimize the .crt file).",
    )
    parser.add_argument(
        "-q",
        dest="quiet",
        action="store_true",
        default=False,
        help="Quiet.",
    )

    # Information
    parser.add_argument(
        "-f",
        dest="info",
        default=None,
        metavar="NAME",
        help="Print info on a .crt file and exit.",
    )
    parser.add_argument(
        "--types",
        action="store_true",
        default=False,
        help="Show the supported cart types and exit.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG).",
    )

    return parser


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(verbosity: int) -> None:
    """Set up the root logger based on requested verbosity."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Info mode
# ---------------------------------------------------------------------------

def _print_crt_info(path: str, repair: bool) -> int:
    """Print the header and chip list of a .crt file."""
    try:
        info = CrtInfoService.describe(path, repair=repair)
        chips = CrtInfoService.list_chips(path)
    except ConversionError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for key, value in info.items():
        label = key.replace("_", " ").title()
        print(f"{label:18s}: {value}")
    print()
    for line in CrtInfoService.format_chips(chips):
        print(line)
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` to use ``sys.argv``.

    Returns
    -------
    int
        Exit code (0 on success).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    logger = logging.getLogger("cartconv.main")

    if args.types:
        for line in CrtInfoService.types_listing():
            print(line)
        return 0

    if args.info is not None:
        return _print_crt_info(args.info, args.repair)

    if not args.inputs or args.output is None:
        parser.print_usage(sys.stderr)
        print("Error: need at least one -i input and an -o output", file=sys.stderr)
        return 1

    options = ConversionOptions(
        inputs=tuple(args.inputs),
        output=args.output,
        target=args.target,
        cart_name=args.name,
        load_address=args.load_address,
        subtype=args.subtype,
        repair=args.repair,
        pad=args.pad,
        keep_empty_banks=args.keep_empty_banks,
        quiet=args.quiet,
    )
    reporter = NullReporter() if args.quiet else ConsoleReporter()

    try:
        result = CartConverter.convert(options, reporter)
    except ConversionError as exc:
        logger.debug("Conversion failed: %r", exc)
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    logger.info("Wrote %d bytes to %s", result.size, result.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
