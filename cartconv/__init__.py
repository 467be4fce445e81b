"""cartconv -- C64 cartridge image converter (raw binary <-> .crt)."""

__version__ = "1.0.0"
