"""
Core enumerations and constants for cartconv.

CartridgeId values 0..74 are the hardware ids stored in a .crt header.
Negative members form the internal range: pseudo-hardware used for the
generic targets and expansions that never carry a ROM image.
"""

from enum import IntEnum


# ---------------------------------------------------------------------------
# Sizes
# ---------------------------------------------------------------------------

# The sizes double as bits of the per-cart size mask and as absolute byte
# counts (12K, 20K, 24K and 96K share bits with their neighbours).
SIZE_2KB = 0x00000800
SIZE_4KB = 0x00001000
SIZE_8KB = 0x00002000
SIZE_12KB = 0x00003000
SIZE_16KB = 0x00004000
SIZE_20KB = 0x00005000
SIZE_24KB = 0x00006000
SIZE_32KB = 0x00008000
SIZE_64KB = 0x00010000
SIZE_96KB = 0x00018000
SIZE_128KB = 0x00020000
SIZE_256KB = 0x00040000
SIZE_512KB = 0x00080000
SIZE_1024KB = 0x00100000
SIZE_2048KB = 0x00200000
SIZE_4096KB = 0x00400000
SIZE_8192KB = 0x00800000
SIZE_16384KB = 0x01000000
SIZE_MAX = SIZE_16384KB

LEGAL_SIZES: tuple[int, ...] = (
    SIZE_2KB, SIZE_4KB, SIZE_8KB, SIZE_12KB, SIZE_16KB, SIZE_20KB,
    SIZE_24KB, SIZE_32KB, SIZE_64KB, SIZE_96KB, SIZE_128KB, SIZE_256KB,
    SIZE_512KB, SIZE_1024KB, SIZE_2048KB, SIZE_4096KB, SIZE_8192KB,
    SIZE_16384KB,
)

# Value of an erased EPROM cell.
EMPTY_BYTE = 0xFF


class ChipType(IntEnum):
    ROM = 0
    RAM = 1
    FLASH = 2


class CartridgeId(IntEnum):
    # Expansions without a ROM image
    DEBUGCART = -124
    CPM = -123
    C64_256K = -122
    PLUS256K = -121
    PLUS60K = -120
    ACIA = -119
    SWIFTLINK = -118
    TURBO232 = -117
    TFE = -116
    DS12C887RTC = -113
    MIDI_MAPLIN = -112
    MIDI_NAMESOFT = -111
    MIDI_SEQUENTIAL = -110
    MIDI_DATEL = -109
    MIDI_PASSPORT = -108
    SFX_SOUND_SAMPLER = -107
    SFX_SOUND_EXPANDER = -106
    REU = -105
    RAMCART = -104
    ISEPIC = -103
    GEORAM = -102
    DQBB = -101
    DIGIMAX = -100
    # Generic pseudo-hardware
    ULTIMAX = -6
    GENERIC_8KB = -3
    GENERIC_16KB = -2
    NONE = -1
    # Container ids
    CRT = 0
    ACTION_REPLAY = 1
    KCS_POWER = 2
    FINAL_III = 3
    SIMONS_BASIC = 4
    OCEAN = 5
    EXPERT = 6
    FUNPLAY = 7
    SUPER_GAMES = 8
    ATOMIC_POWER = 9
    EPYX_FASTLOAD = 10
    WESTERMANN = 11
    REX = 12
    FINAL_I = 13
    MAGIC_FORMEL = 14
    GS = 15
    WARPSPEED = 16
    DINAMIC = 17
    ZAXXON = 18
    MAGIC_DESK = 19
    SUPER_SNAPSHOT_V5 = 20
    COMAL80 = 21
    STRUCTURED_BASIC = 22
    ROSS = 23
    DELA_EP64 = 24
    DELA_EP7X8 = 25
    DELA_EP256 = 26
    REX_EP256 = 27
    MIKRO_ASSEMBLER = 28
    FINAL_PLUS = 29
    ACTION_REPLAY4 = 30
    STARDOS = 31
    EASYFLASH = 32
    EASYFLASH_XBANK = 33
    CAPTURE = 34
    ACTION_REPLAY3 = 35
    RETRO_REPLAY = 36
    MMC64 = 37
    MMC_REPLAY = 38
    IDE64 = 39
    SUPER_SNAPSHOT = 40
    IEEE488 = 41
    GAME_KILLER = 42
    P64 = 43
    EXOS = 44
    FREEZE_FRAME = 45
    FREEZE_MACHINE = 46
    SNAPSHOT64 = 47
    SUPER_EXPLODE_V5 = 48
    MAGIC_VOICE = 49
    ACTION_REPLAY2 = 50
    MACH5 = 51
    DIASHOW_MAKER = 52
    PAGEFOX = 53
    KINGSOFT = 54
    SILVERROCK_128 = 55
    FORMEL64 = 56
    RGCD = 57
    RRNETMK3 = 58
    EASYCALC = 59
    GMOD2 = 60
    MAX_BASIC = 61
    GMOD3 = 62
    ZIPPCODE48 = 63
    BLACKBOX8 = 64
    BLACKBOX3 = 65
    BLACKBOX4 = 66
    REX_RAMFLOPPY = 67
    BISPLUS = 68
    SDBOX = 69
    MULTIMAX = 70
    BLACKBOX9 = 71
    LT_KERNAL = 72
    RAMLINK = 73
    HERO = 74

    @staticmethod
    def is_internal(value: int) -> bool:
        """True for pseudo ids that never appear as a real .crt hardware id."""
        return value < 0

    @staticmethod
    def is_container_id(value: int) -> bool:
        return CartridgeId.CRT <= value <= LAST_CARTRIDGE_ID

    @staticmethod
    def is_multiplexing(value: int) -> bool:
        return value in MULTIPLEXING_IDS

    @staticmethod
    def decode(hi: int, lo: int) -> int:
        """Decode the 16-bit header field, sign-extending through bit 7 of *lo*."""
        value = (hi << 8) | lo
        if lo & 0x80:
            value -= 0x10000
        return value

    @staticmethod
    def encode(value: int) -> tuple[int, int]:
        """Return ``(hi, lo)`` header bytes for *value* (two's complement)."""
        value &= 0xFFFF
        return value >> 8, value & 0xFF


LAST_CARTRIDGE_ID = CartridgeId.HERO

MULTIPLEXING_IDS: frozenset[int] = frozenset({
    CartridgeId.DELA_EP64,
    CartridgeId.DELA_EP7X8,
    CartridgeId.DELA_EP256,
    CartridgeId.REX_EP256,
})
