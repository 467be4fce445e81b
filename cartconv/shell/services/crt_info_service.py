"""
Read-only inspection of .crt files and the hardware table.

Responsibilities:
  - Describe a .crt header (version, name, hardware id, mode lines) and
    warn about mode lines that differ from the table.
  - List every CHIP package with its offset, type, bank and sizes.
  - Render the list of supported ``-t`` tokens.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from cartconv.core.carts.table import CART_INFO, supported_types
from cartconv.core.context import ConversionContext, ConversionOptions
from cartconv.core.errors import ConversionError, ErrorKind
from cartconv.core.loader import (
    CHIP_HEADER_SIZE,
    CRT_HEADER_SIZE,
    CRT_SIGNATURE,
    ChipHeader,
    CrtHeader,
    load_input_file,
)
from cartconv.core.types import CartridgeId

logger = logging.getLogger(__name__)

_CHIP_TYPE_NAMES = ("ROM", "RAM", "FLASH")


@dataclass(frozen=True)
class ChipEntry:
    """One CHIP package as found in the file."""

    offset: int
    tag: str
    chip_type: str
    bank: int
    address: int
    size: int
    chunk_length: int
    problem: str = ""


class CrtInfoService:
    """Reports on .crt files without converting them."""

    @staticmethod
    def describe(path: str, repair: bool = False) -> dict[str, str]:
        """Return the header fields of *path* as display strings.

        The file is also run through the regular loader; if that fails the
        ``status`` key says so and the header is still described.
        """
        header_bytes = CrtInfoService._read_header(path)
        header = CrtHeader.parse(header_bytes)
        crt_id = header.hardware_id

        if CartridgeId.is_container_id(crt_id):
            info = CART_INFO[crt_id]
            id_name = info.name
        else:
            info = None
            id_name = "unknown"

        result = {
            "crt_version": f"{header.version[0]}.{header.version[1]}",
            "name": header.name,
            "hardware_id": f"{crt_id} ({id_name})",
            "hardware_revision": str(header.subtype),
            "mode": f"exrom: {header.exrom} game: {header.game} ({header.mode_name})",
        }

        warnings = []
        if info is not None and crt_id != CartridgeId.CRT:
            if header.exrom != info.exrom:
                warnings.append("exrom in crt image set incorrectly.")
            if header.game != info.game:
                warnings.append("game in crt image set incorrectly.")
        if warnings:
            result["warnings"] = " ".join(warnings)

        ctx = ConversionContext(options=ConversionOptions(inputs=(path,), output="", repair=repair))
        try:
            load_input_file(ctx, path)
        except ConversionError as exc:
            logger.debug("Loader rejected %s: %s", path, exc)
            result["status"] = f"this file seems broken ({exc.message})"
        else:
            result["status"] = "ok"
        return result

    @staticmethod
    def list_chips(path: str) -> list[ChipEntry]:
        """Walk the CHIP packages of *path* without interpreting their data."""
        file_length = os.path.getsize(path)
        entries: list[ChipEntry] = []
        with open(path, "rb") as fh:
            fh.seek(CRT_HEADER_SIZE)
            position = CRT_HEADER_SIZE
            while True:
                raw = fh.read(CHIP_HEADER_SIZE)
                if len(raw) < CHIP_HEADER_SIZE:
                    break
                chip = ChipHeader.parse(raw)
                problem = ""
                if chip.data_length + CHIP_HEADER_SIZE > chip.total_length:
                    problem = "data size exceeds chunk length"
                if chip.total_length > file_length - position:
                    problem = "data size exceeds end of file"
                entries.append(ChipEntry(
                    offset=position,
                    tag=chip.tag.decode("ascii", errors="replace"),
                    chip_type=_CHIP_TYPE_NAMES[chip.chip_type] if chip.chip_type < len(_CHIP_TYPE_NAMES) else "UNK",
                    bank=chip.bank,
                    address=chip.load_address,
                    size=chip.data_length,
                    chunk_length=chip.total_length,
                    problem=problem,
                ))
                if problem == "data size exceeds end of file" or chip.total_length < CHIP_HEADER_SIZE:
                    break
                position += chip.total_length
                fh.seek(position)
        return entries

    @staticmethod
    def format_chips(entries: list[ChipEntry]) -> list[str]:
        lines = ["offset  sig  type  bank start size  chunklen"]
        for entry in entries:
            lines.append(
                f"${entry.offset:06x} {entry.tag:<4} {entry.chip_type:<5} #{entry.bank:03d} "
                f"${entry.address:04x} ${entry.size:04x} ${entry.chunk_length:04x}"
            )
            if entry.problem:
                lines.append(f"  Error: {entry.problem}")
        total = sum(entry.size for entry in entries)
        lines.append("")
        lines.append(f"total banks: {len(entries)} size: ${total:06x}")
        return lines

    @staticmethod
    def types_listing() -> list[str]:
        """Lines of the ``--types`` output."""
        lines = [
            "supported cart types:",
            "",
            "bin      Binary .bin file (Default crt->bin)",
            "prg      Binary C64 .prg file with load-address",
            "",
            "normal   Generic 8KiB/12KiB/16KiB .crt file (Default bin->crt)",
            "ulti     Ultimax mode 4KiB/8KiB/16KiB .crt file",
            "",
        ]
        for entry in supported_types():
            note = ", extra files can be inserted" if entry.accepts_insertions else ""
            lines.append(f"{entry.option:<8} {entry.cart_id:2d} {entry.name} .crt file{note}")
        return lines

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _read_header(path: str) -> bytes:
        try:
            with open(path, "rb") as fh:
                header = fh.read(CRT_HEADER_SIZE)
        except OSError as exc:
            raise ConversionError(ErrorKind.IoOpen, f"Can't open {path}") from exc
        if len(header) != CRT_HEADER_SIZE:
            raise ConversionError(ErrorKind.IoRead, f"Can't read the full header of {path}")
        if header[:len(CRT_SIGNATURE)] != CRT_SIGNATURE:
            raise ConversionError(ErrorKind.UnsupportedConversion, f"{path} is not a .crt file")
        return header
