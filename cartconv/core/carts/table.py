"""
The cartridge descriptor table, indexed by .crt hardware id.

The initial exrom/game values are copied as-is from the established table;
several of them are known to be unverified against real hardware (FIXME
upstream) and are kept so that produced headers stay byte-compatible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cartconv.core.carts.descriptor import (
    CartDescriptor,
    ChipSpec,
    FixedLayout,
    Generic,
    Interleaved,
    Multiplexing,
    MultiplexKind,
    RegularBanked,
    ShiftedBanked,
    SizeConditional,
    SplitBlock,
)
from cartconv.core.errors import ConversionError, ErrorKind
from cartconv.core.types import (
    CartridgeId,
    ChipType,
    LAST_CARTRIDGE_ID,
    SIZE_1024KB,
    SIZE_128KB,
    SIZE_12KB,
    SIZE_16384KB,
    SIZE_16KB,
    SIZE_2048KB,
    SIZE_20KB,
    SIZE_24KB,
    SIZE_256KB,
    SIZE_2KB,
    SIZE_32KB,
    SIZE_4096KB,
    SIZE_4KB,
    SIZE_512KB,
    SIZE_64KB,
    SIZE_8192KB,
    SIZE_8KB,
    SIZE_96KB,
)

_ROM = ChipType.ROM
_FLASH = ChipType.FLASH

_REGULAR = RegularBanked()

_ZAXXON = FixedLayout(game=0, exrom=0, chips=(
    ChipSpec(0x1000, 0, 0x8000),
    ChipSpec(0x2000, 0, 0xA000),
    ChipSpec(0x2000, 1, 0xA000),
))

_STARDOS = FixedLayout(game=1, exrom=0, chips=(
    ChipSpec(0x2000, 0, 0x8000),
    ChipSpec(0x2000, 0, 0xE000),
))

_EASYCALC = FixedLayout(game=1, exrom=1, chips=(
    ChipSpec(0x2000, 0, 0x8000),
    ChipSpec(0x2000, 0, 0xA000),
    ChipSpec(0x2000, 1, 0xA000),
))

# Fun Play banks are numbered 0, 8, 16 .. 56, then 1, 9 .. 57.
_FUNPLAY = FixedLayout(game=1, exrom=0, chips=tuple(
    ChipSpec(0x2000, bank, 0x8000)
    for bank in list(range(0, 0x40, 8)) + list(range(1, 0x41, 8))
))


def _cart(exrom, game, sizes, bank_size, load_address, banks, data_type, name, option, strategy):
    return CartDescriptor(
        exrom=exrom,
        game=game,
        sizes=sizes,
        bank_size=bank_size,
        load_address=load_address,
        banks=banks,
        data_type=data_type,
        name=name,
        option=option,
        strategy=strategy,
    )


# exrom, game, sizes, bank size, load address, banks, data type, name, option, strategy
CART_INFO: tuple[CartDescriptor, ...] = (
    _cart(0, 1, SIZE_4KB | SIZE_8KB | SIZE_12KB | SIZE_16KB, 0, 0, 0, _ROM, "Generic Cartridge", None, Generic()),
    _cart(0, 1, SIZE_32KB, 0x2000, 0x8000, 4, _ROM, "Action Replay V5", "ar5", _REGULAR),
    _cart(0, 0, SIZE_16KB, 0x2000, 0, 2, _ROM, "KCS Power Cartridge", "kcs", SplitBlock()),
    _cart(0, 0, SIZE_64KB | SIZE_256KB, 0x4000, 0x8000, 0, _ROM, "The Final Cartridge III", "fc3", _REGULAR),
    _cart(0, 0, SIZE_16KB, 0x2000, 0, 2, _ROM, "Simons' BASIC", "simon", SplitBlock()),
    _cart(0, 0, SIZE_32KB | SIZE_128KB | SIZE_256KB | SIZE_512KB, 0x2000, 0, 0, _ROM, "Ocean", "ocean",
          SizeConditional(split_size=SIZE_256KB)),
    _cart(1, 0, SIZE_8KB, 0x2000, 0x8000, 1, _FLASH, "Expert Cartridge", "expert", None),
    _cart(0, 1, SIZE_128KB, 0x2000, 0x8000, 16, _ROM, "Fun Play", "fp", _FUNPLAY),
    _cart(0, 0, SIZE_64KB, 0x4000, 0x8000, 4, _ROM, "Super Games", "sg", _REGULAR),
    _cart(0, 1, SIZE_32KB, 0x2000, 0x8000, 4, _ROM, "Atomic Power", "ap", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "Epyx FastLoad", "epyx", _REGULAR),
    _cart(0, 0, SIZE_16KB, 0x4000, 0x8000, 1, _ROM, "Westermann Learning", "wl", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "REX Utility", "ru", _REGULAR),
    _cart(0, 0, SIZE_16KB, 0x4000, 0x8000, 1, _ROM, "The Final Cartridge", "fc1", _REGULAR),
    # FIXME: 64K (v1), 96K (v2) and 128K (full) dumps exist; mode lines unverified
    _cart(1, 0, SIZE_64KB | SIZE_96KB | SIZE_128KB, 0x2000, 0xE000, 0, _ROM, "Magic Formel", "mf", _REGULAR),
    _cart(0, 1, SIZE_512KB, 0x2000, 0x8000, 64, _ROM, "C64 Games System", "gs", _REGULAR),
    _cart(0, 0, SIZE_16KB, 0x4000, 0x8000, 1, _ROM, "Warp Speed", "ws", _REGULAR),
    _cart(0, 1, SIZE_128KB, 0x2000, 0x8000, 16, _ROM, "Dinamic", "din", _REGULAR),
    _cart(0, 0, SIZE_20KB, 0, 0, 3, _ROM, "Zaxxon", "zaxxon", _ZAXXON),
    _cart(0, 1, SIZE_32KB | SIZE_64KB | SIZE_128KB | SIZE_256KB | SIZE_512KB | SIZE_1024KB, 0x2000, 0x8000, 0, _ROM,
          "Magic Desk", "md", _REGULAR),
    _cart(0, 0, SIZE_64KB, 0x4000, 0x8000, 4, _ROM, "Super Snapshot V5", "ss5", _REGULAR),
    _cart(0, 0, SIZE_64KB | SIZE_128KB, 0x4000, 0x8000, 0, _ROM, "Comal 80", "comal", _REGULAR),
    _cart(1, 0, SIZE_16KB, 0x2000, 0x8000, 2, _ROM, "Structured BASIC", "sb", _REGULAR),
    _cart(0, 0, SIZE_16KB | SIZE_32KB, 0x4000, 0x8000, 0, _ROM, "ROSS", "ross", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0, 0x8000, 0, _ROM, "Dela EP64", "dep64", Multiplexing(MultiplexKind.DELA_EP64)),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 0, _ROM, "Dela EP7x8", "dep7x8", Multiplexing(MultiplexKind.DELA_EP7X8)),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 0, _ROM, "Dela EP256", "dep256", Multiplexing(MultiplexKind.DELA_EP256)),
    _cart(0, 1, SIZE_8KB, 0, 0x8000, 0, _ROM, "REX 256K EPROM Cart", "rep256", Multiplexing(MultiplexKind.REX_EP256)),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "Mikro Assembler", "mikro", _REGULAR),
    _cart(1, 0, SIZE_24KB | SIZE_32KB, 0x8000, 0x0000, 1, _ROM, "Final Cartridge Plus", "fcp", ShiftedBanked()),
    _cart(0, 1, SIZE_32KB, 0x2000, 0x8000, 4, _ROM, "Action Replay MK4", "ar4", _REGULAR),
    _cart(1, 0, SIZE_16KB, 0x2000, 0, 4, _ROM, "Stardos", "star", _STARDOS),
    _cart(1, 0, SIZE_1024KB, 0x2000, 0, 128, _ROM, "EasyFlash", "easy", Interleaved()),
    _cart(0, 0, 0, 0, 0, 0, _ROM, "EasyFlash Xbank", None, None),
    _cart(1, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "Capture", "cap", _REGULAR),
    _cart(0, 1, SIZE_16KB, 0x2000, 0x8000, 2, _ROM, "Action Replay MK3", "ar3", _REGULAR),
    _cart(0, 1, SIZE_32KB | SIZE_64KB | SIZE_128KB, 0x2000, 0x8000, 0, _ROM, "Retro Replay", "rr", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "MMC64", "mmc64", _REGULAR),
    _cart(0, 0, SIZE_64KB | SIZE_512KB, 0x2000, 0x8000, 0, _ROM, "MMC Replay", "mmcr", _REGULAR),
    _cart(0, 1, SIZE_64KB | SIZE_128KB | SIZE_512KB, 0x4000, 0x8000, 0, _FLASH, "IDE64", "ide64", _REGULAR),
    _cart(0, 0, SIZE_32KB, 0x4000, 0x8000, 2, _ROM, "Super Snapshot V4", "ss4", _REGULAR),
    _cart(0, 1, SIZE_4KB, 0x1000, 0x8000, 1, _ROM, "IEEE-488 Interface", "ieee", _REGULAR),
    _cart(1, 0, SIZE_8KB, 0x2000, 0xE000, 1, _ROM, "Game Killer", "gk", _REGULAR),
    _cart(0, 1, SIZE_256KB, 0x2000, 0x8000, 32, _ROM, "Prophet64", "p64", _REGULAR),
    _cart(1, 0, SIZE_8KB, 0x2000, 0xE000, 1, _ROM, "EXOS", "exos", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "Freeze Frame", "ff", _REGULAR),
    _cart(0, 1, SIZE_16KB | SIZE_32KB, 0x4000, 0x8000, 0, _ROM, "Freeze Machine", "fm", _REGULAR),
    _cart(0, 0, SIZE_4KB, 0x1000, 0xE000, 1, _ROM, "Snapshot 64", "s64", _REGULAR),
    _cart(0, 1, SIZE_16KB, 0x2000, 0x8000, 2, _ROM, "Super Explode V5.0", "se5", _REGULAR),
    _cart(1, 0, SIZE_16KB, 0x4000, 0x8000, 1, _ROM, "Magic Voice", "mv", _REGULAR),
    _cart(0, 1, SIZE_16KB, 0x2000, 0x8000, 2, _ROM, "Action Replay MK2", "ar2", _REGULAR),
    _cart(0, 1, SIZE_4KB | SIZE_8KB, 0x2000, 0x8000, 0, _ROM, "MACH 5", "mach5", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "Diashow-Maker", "dsm", _REGULAR),
    _cart(0, 0, SIZE_64KB, 0x4000, 0x8000, 4, _ROM, "Pagefox", "pf", _REGULAR),
    _cart(0, 0, SIZE_24KB, 0x2000, 0x8000, 3, _ROM, "Kingsoft", "ks", _REGULAR),
    _cart(0, 1, SIZE_128KB, 0x2000, 0x8000, 16, _ROM, "Silverrock 128KiB Cartridge", "silver", _REGULAR),
    _cart(1, 0, SIZE_32KB, 0x2000, 0xE000, 4, _ROM, "Formel 64", "f64", _REGULAR),
    _cart(0, 1, SIZE_64KB, 0x2000, 0x8000, 8, _ROM, "RGCD", "rgcd", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "RR-Net MK3", "rrnet", _REGULAR),
    _cart(0, 0, SIZE_24KB, 0, 0, 3, _ROM, "Easy Calc Result", "ecr", _EASYCALC),
    _cart(0, 1, SIZE_512KB, 0x2000, 0x8000, 64, _ROM, "GMod2", "gmod2", _REGULAR),
    _cart(1, 0, SIZE_16KB, 0x2000, 0, 0, _ROM, "MAX Basic", "max", Generic()),
    _cart(0, 1, SIZE_2048KB | SIZE_4096KB | SIZE_8192KB | SIZE_16384KB, 0x2000, 0x8000, 0, _ROM, "GMod3", "gmod3",
          _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "ZIPP-CODE 48", "zipp", _REGULAR),
    _cart(0, 0, SIZE_32KB | SIZE_64KB, 0x4000, 0x8000, 0, _ROM, "Blackbox V8", "bb8", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "Blackbox V3", "bb3", _REGULAR),
    _cart(0, 0, SIZE_16KB, 0x4000, 0x8000, 1, _ROM, "Blackbox V4", "bb4", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "REX RAM-Floppy", "rrf", _REGULAR),
    _cart(0, 1, SIZE_2KB | SIZE_4KB | SIZE_8KB, 0x2000, 0x8000, 0, _ROM, "BIS-Plus", "bis", _REGULAR),
    _cart(0, 0, SIZE_128KB, 0x4000, 0x8000, 8, _ROM, "SD-BOX", "sdbox", _REGULAR),
    _cart(1, 0, SIZE_1024KB, 0x4000, 0x8000, 64, _ROM, "MultiMAX", "mm", _REGULAR),
    _cart(0, 0, SIZE_32KB, 0x4000, 0x8000, 0, _ROM, "Blackbox V9", "bb9", _REGULAR),
    _cart(0, 1, SIZE_8KB, 0x2000, 0x8000, 1, _ROM, "Lt. Kernal Host Adaptor", "ltk", _REGULAR),
    _cart(0, 1, SIZE_64KB, 0x2000, 0x8000, 8, _ROM, "RAMLink", "rl", _REGULAR),
    _cart(0, 1, SIZE_32KB, 0x2000, 0x8000, 4, _ROM, "H.E.R.O. (Drean)", "hero", _REGULAR),
)

assert len(CART_INFO) == LAST_CARTRIDGE_ID + 1


# ---------------------------------------------------------------------------
# Target selection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TargetSelection:
    """Result of resolving a ``-t`` token.

    ``cart_id`` is None when the output is a plain binary (``bin``/``prg``).
    """

    cart_id: Optional[int]
    to_prg: bool = False
    ultimax: bool = False

    @property
    def to_binary(self) -> bool:
        return self.cart_id is None


@dataclass(frozen=True)
class SupportedType:
    option: str
    cart_id: int
    name: str
    accepts_insertions: bool


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_descriptor(cart_id: int) -> CartDescriptor:
    """Return the descriptor for container id *cart_id*.

    Raises:
        ConversionError: ``UnknownHardwareId`` if *cart_id* is not 0..74.
    """
    if not CartridgeId.is_container_id(cart_id):
        raise ConversionError(ErrorKind.UnknownHardwareId, f"Unknown CRT ID: {cart_id}")
    return CART_INFO[cart_id]


def find_by_option(token: str) -> Optional[int]:
    """Resolve a command-line token to a hardware id (case-insensitive)."""
    wanted = token.lower()
    for cart_id, info in enumerate(CART_INFO):
        if info.option is not None and info.option.lower() == wanted:
            return cart_id
    return None


def resolve_target(token: str) -> TargetSelection:
    """Resolve a ``-t`` token, including the ``bin``/``prg``/``normal``/``ulti`` pseudo-targets.

    Raises:
        ConversionError: ``UnsupportedConversion`` for an unknown token.
    """
    cart_id = find_by_option(token)
    if cart_id is not None:
        # MAX Basic only exists as an ultimax cartridge.
        return TargetSelection(cart_id, ultimax=cart_id == CartridgeId.MAX_BASIC)
    if token == "bin":
        return TargetSelection(None)
    if token == "prg":
        return TargetSelection(None, to_prg=True)
    if token == "normal":
        return TargetSelection(int(CartridgeId.CRT))
    if token == "ulti":
        return TargetSelection(int(CartridgeId.CRT), ultimax=True)
    raise ConversionError(ErrorKind.UnsupportedConversion, f"Unknown cart type: {token}")


def supported_types() -> list[SupportedType]:
    """Selectable hardware types, sorted by option token."""
    entries = [
        SupportedType(info.option, cart_id, info.name, info.accepts_insertions)
        for cart_id, info in enumerate(CART_INFO)
        if cart_id != CartridgeId.CRT and info.option is not None
    ]
    return sorted(entries, key=lambda entry: entry.option)
