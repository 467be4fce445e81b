"""
Shared helpers for the cartconv tests: temporary directories, synthetic
images and a minimal .crt builder/parser independent of the package code.
"""

import os
import shutil
import struct
import tempfile
import unittest

import numpy as np

CRT_SIGNATURE = b"C64 CARTRIDGE   "


def pattern(size, seed=0):
    """Deterministic non-trivial bytes of *size* bytes."""
    index = np.arange(size, dtype=np.uint32)
    return ((index * 7 + index // 251 + seed) & 0xFF).astype(np.uint8).tobytes()


def crt_header(cart_id, exrom=0, game=1, name=b"TEST", header_length=0x40, subtype=0):
    value = cart_id & 0xFFFF
    header = bytearray(0x40)
    header[0:16] = CRT_SIGNATURE
    header[0x10:0x14] = struct.pack(">I", header_length)
    header[0x14] = 1
    header[0x15] = 0
    header[0x16] = value >> 8
    header[0x17] = value & 0xFF
    header[0x18] = exrom
    header[0x19] = game
    header[0x1A] = subtype
    header[0x20:0x20 + len(name)] = name
    return bytes(header)


def chip(data, bank=0, address=0x8000, chip_type=0, total_length=None, data_length=None):
    if data_length is None:
        data_length = len(data)
    if total_length is None:
        total_length = data_length + 0x10
    return struct.pack(">4sIHHHH", b"CHIP", total_length, chip_type, bank, address, data_length) + data


def parse_crt(raw):
    """Return ``(header_bytes, [(total, type, bank, address, length, data), ...])``."""
    header = raw[:0x40]
    chips = []
    position = 0x40
    while position < len(raw):
        tag, total, chip_type, bank, address, length = struct.unpack_from(">4sIHHHH", raw, position)
        assert tag == b"CHIP"
        data = raw[position + 0x10:position + 0x10 + length]
        chips.append((total, chip_type, bank, address, length, data))
        position += total
    return header, chips


class TempDirTestCase(unittest.TestCase):
    """TestCase with a private scratch directory."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(prefix="cartconv-test-")

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def path(self, name):
        return os.path.join(self.tmpdir, name)

    def write_file(self, name, data):
        target = self.path(name)
        with open(target, "wb") as fh:
            fh.write(data)
        return target

    def read_file(self, name):
        with open(self.path(name), "rb") as fh:
            return fh.read()
