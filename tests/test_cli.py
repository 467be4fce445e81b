"""
Tests for the command-line entry point and the .crt info report.
"""

import contextlib
import io
import unittest

from cartconv.main import main
from cartconv.core.types import CartridgeId, SIZE_16KB, SIZE_8KB
from cartconv.shell.services.crt_info_service import CrtInfoService

from tests.support import TempDirTestCase, chip, crt_header, parse_crt, pattern


def _run(argv):
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestMain(TempDirTestCase):

    def test_convert_binary(self):
        source = self.write_file("game.bin", pattern(SIZE_16KB))
        code, out, err = _run(["-i", source, "-o", self.path("game.crt"), "-t", "normal", "-n", "game"])
        self.assertEqual(code, 0, err)
        self.assertIn("Conversion from binary format to Generic Cartridge .crt successful.", out)
        header, chips = parse_crt(self.read_file("game.crt"))
        self.assertEqual(header[0x20:0x24], b"GAME")
        self.assertEqual(len(chips), 1)

    def test_quiet(self):
        source = self.write_file("game.bin", pattern(SIZE_8KB))
        code, out, _ = _run(["-q", "-i", source, "-o", self.path("game.crt"), "-t", "normal"])
        self.assertEqual(code, 0)
        self.assertEqual(out, "")

    def test_prg_with_explicit_load_address(self):
        source = self.write_file("game.crt", crt_header(CartridgeId.CRT) + chip(pattern(SIZE_8KB)))
        code, _, err = _run(["-t", "prg", "-l", "0x0801", "-i", source, "-o", self.path("game.prg")])
        self.assertEqual(code, 0, err)
        self.assertEqual(self.read_file("game.prg")[:2], b"\x01\x08")

    def test_failure_exit_code(self):
        source = self.write_file("game.bin", pattern(SIZE_8KB))
        code, _, err = _run(["-i", source, "-o", self.path("game.crt")])
        self.assertEqual(code, 1)
        self.assertIn("Error: File is already in binary format", err)

    def test_missing_arguments(self):
        code, _, err = _run(["-o", self.path("game.crt")])
        self.assertEqual(code, 1)
        self.assertIn("Error:", err)

    def test_insertions(self):
        base = self.write_file("base.bin", pattern(SIZE_8KB))
        insert = self.write_file("one.bin", pattern(SIZE_8KB, seed=1))
        code, out, err = _run(["-t", "dep256", "-i", base, "-i", insert, "-o", self.path("ep.crt")])
        self.assertEqual(code, 0, err)
        self.assertIn(f"inserted {insert} in bank 1 of the Dela EP256 .crt", out)

    def test_types(self):
        code, out, _ = _run(["--types"])
        self.assertEqual(code, 0)
        self.assertIn("ocean     5 Ocean .crt file", out)
        self.assertIn("dep64    24 Dela EP64 .crt file, extra files can be inserted", out)

    def test_version(self):
        with self.assertRaises(SystemExit) as cm:
            _run(["--version"])
        self.assertEqual(cm.exception.code, 0)

    def test_info(self):
        source = self.write_file(
            "game.crt",
            crt_header(CartridgeId.OCEAN, exrom=0, game=1, name=b"OCEAN GAME")
            + chip(pattern(SIZE_8KB), bank=0)
            + chip(pattern(SIZE_8KB), bank=1),
        )
        code, out, _ = _run(["-f", source])
        self.assertEqual(code, 0)
        self.assertIn("5 (Ocean)", out)
        self.assertIn("OCEAN GAME", out)
        self.assertIn("game in crt image set incorrectly.", out)
        self.assertIn("total banks: 2 size: $004000", out)

    def test_info_on_binary(self):
        source = self.write_file("game.bin", pattern(SIZE_8KB))
        code, _, err = _run(["-f", source])
        self.assertEqual(code, 1)
        self.assertIn("is not a .crt file", err)


class TestCrtInfoService(TempDirTestCase):

    def test_describe(self):
        source = self.write_file(
            "game.crt", crt_header(CartridgeId.CRT, exrom=1, game=0, subtype=3) + chip(pattern(SIZE_8KB)),
        )
        info = CrtInfoService.describe(source)
        self.assertEqual(info["crt_version"], "1.0")
        self.assertEqual(info["hardware_id"], "0 (Generic Cartridge)")
        self.assertEqual(info["hardware_revision"], "3")
        self.assertEqual(info["mode"], "exrom: 1 game: 0 (ultimax)")
        self.assertEqual(info["status"], "ok")
        self.assertNotIn("warnings", info)

    def test_describe_broken_file(self):
        source = self.write_file("game.crt", crt_header(CartridgeId.CRT) + chip(pattern(SIZE_8KB))[:0x100])
        info = CrtInfoService.describe(source)
        self.assertTrue(info["status"].startswith("this file seems broken"))

    def test_list_chips(self):
        source = self.write_file(
            "game.crt",
            crt_header(CartridgeId.EASYFLASH, exrom=1, game=0)
            + chip(pattern(SIZE_8KB), bank=0, address=0x8000, chip_type=2)
            + chip(pattern(SIZE_8KB), bank=0, address=0xA000, chip_type=2),
        )
        entries = CrtInfoService.list_chips(source)
        self.assertEqual([(e.offset, e.chip_type, e.address) for e in entries], [
            (0x40, "FLASH", 0x8000),
            (0x40 + 0x2010, "FLASH", 0xA000),
        ])
        lines = CrtInfoService.format_chips(entries)
        self.assertEqual(lines[1], "$000040 CHIP FLASH #000 $8000 $2000 $2010")

    def test_list_chips_reports_truncation(self):
        source = self.write_file("game.crt", crt_header(CartridgeId.CRT) + chip(pattern(SIZE_8KB))[:0x100])
        entries = CrtInfoService.list_chips(source)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].problem, "data size exceeds end of file")


if __name__ == "__main__":
    unittest.main()
