"""
Tests for the per-variant encoders, driven through the conversion service.
"""

import os
import unittest

from cartconv.core.carts import CART_INFO, RegularBanked
from cartconv.core.context import ConversionOptions
from cartconv.core.errors import ConversionError, ErrorKind
from cartconv.core.logger import RecordingReporter
from cartconv.core.types import (
    CartridgeId,
    LEGAL_SIZES,
    SIZE_128KB,
    SIZE_16KB,
    SIZE_1024KB,
    SIZE_20KB,
    SIZE_24KB,
    SIZE_256KB,
    SIZE_2KB,
    SIZE_32KB,
    SIZE_4KB,
    SIZE_64KB,
    SIZE_8KB,
)
from cartconv.core.writer import build_crt_header
from cartconv.shell.services.converter import CartConverter, Direction, pad_size

from tests.support import TempDirTestCase, chip, crt_header, parse_crt, pattern


class EncoderTestCase(TempDirTestCase):

    def to_crt(self, data, target, **kwargs):
        source = self.write_file("in.bin", data)
        options = ConversionOptions(inputs=(source,), output=self.path("out.crt"), target=target, **kwargs)
        CartConverter.convert(options)
        return parse_crt(self.read_file("out.crt"))

    def assertChipInvariant(self, chips):
        for total, _, _, _, length, data in chips:
            self.assertEqual(total, length + 0x10)
            self.assertEqual(len(data), length)


class TestGeneric(EncoderTestCase):

    def test_16k_normal(self):
        data = pattern(SIZE_16KB)
        header, chips = self.to_crt(data, "normal")
        self.assertEqual(header[0x16:0x18], b"\x00\x00")
        self.assertEqual((header[0x18], header[0x19]), (0, 1))
        self.assertEqual(len(chips), 1)
        _, chip_type, bank, address, length, payload = chips[0]
        self.assertEqual((chip_type, bank, address, length), (0, 0, 0x8000, 0x4000))
        self.assertEqual(payload, data)

    def test_default_target_is_required_for_binaries(self):
        source = self.write_file("in.bin", pattern(SIZE_8KB))
        options = ConversionOptions(inputs=(source,), output=self.path("out.crt"))
        with self.assertRaises(ConversionError) as cm:
            CartConverter.convert(options)
        self.assertEqual(cm.exception.kind, ErrorKind.AlreadyBinary)
        self.assertFalse(os.path.exists(self.path("out.crt")))

    def test_8k_ultimax(self):
        header, chips = self.to_crt(pattern(SIZE_8KB), "ulti")
        self.assertEqual((header[0x18], header[0x19]), (1, 0))
        self.assertEqual(len(chips), 1)
        self.assertEqual(chips[0][3:5], (0xE000, 0x2000))

    def test_4k_ultimax(self):
        _, chips = self.to_crt(pattern(SIZE_4KB), "ulti")
        self.assertEqual(chips[0][3:5], (0xF000, 0x1000))

    def test_16k_ultimax_is_split(self):
        data = pattern(SIZE_16KB)
        header, chips = self.to_crt(data, "ulti")
        self.assertEqual((header[0x18], header[0x19]), (1, 0))
        self.assertEqual([c[3] for c in chips], [0x8000, 0xE000])
        self.assertEqual(chips[0][5] + chips[1][5], data)

    def test_20k_passes_the_mask_but_not_the_layout(self):
        with self.assertRaises(ConversionError) as cm:
            self.to_crt(pattern(SIZE_20KB), "normal")
        self.assertEqual(cm.exception.kind, ErrorKind.InvalidSize)
        self.assertFalse(os.path.exists(self.path("out.crt")))

    def test_max_basic(self):
        header, chips = self.to_crt(pattern(SIZE_16KB), "max")
        self.assertEqual(header[0x17], CartridgeId.MAX_BASIC)
        self.assertEqual((header[0x18], header[0x19]), (1, 0))
        self.assertEqual([c[3] for c in chips], [0x8000, 0xE000])


class TestHeader(EncoderTestCase):

    def test_name_and_subtype(self):
        header, _ = self.to_crt(pattern(SIZE_8KB), "epyx", cart_name="my game", subtype=2)
        self.assertEqual(header[:16], b"C64 CARTRIDGE   ")
        self.assertEqual(header[0x10:0x14], b"\x00\x00\x00\x40")
        self.assertEqual((header[0x14], header[0x15]), (1, 1))
        self.assertEqual(header[0x1A], 2)
        self.assertEqual(header[0x1B:0x20], bytes(5))
        self.assertEqual(header[0x20:0x40], b"MY GAME".ljust(32, b"\x00"))

    def test_default_name(self):
        header, _ = self.to_crt(pattern(SIZE_8KB), "epyx")
        self.assertEqual((header[0x14], header[0x15]), (1, 0))
        self.assertEqual(header[0x20:0x40], b"VICE CART".ljust(32, b"\x00"))

    def test_long_name_is_truncated(self):
        header = build_crt_header(CartridgeId.CRT, 0, "x" * 40, 1, 0)
        self.assertEqual(len(header), 0x40)
        self.assertEqual(header[0x20:0x40], b"X" * 32)

    def test_negative_id_is_written_as_twos_complement(self):
        header = build_crt_header(CartridgeId.ULTIMAX, 0, "", 0, 1)
        self.assertEqual(header[0x16:0x18], b"\xff\xfa")


class TestRegularBanked(EncoderTestCase):

    @staticmethod
    def _round_trip_size(info):
        for size in LEGAL_SIZES:
            if not info.accepts_size(size):
                continue
            if info.banks == 0 or info.banks * info.bank_size == size:
                return size
        return None

    def test_round_trip_for_every_regular_variant(self):
        for cart_id, info in enumerate(CART_INFO):
            if not isinstance(info.strategy, RegularBanked) or info.option is None:
                continue
            size = self._round_trip_size(info)
            if size is None:
                continue
            with self.subTest(cart=info.name, size=size):
                data = pattern(size, seed=cart_id)
                header, chips = self.to_crt(data, info.option)
                self.assertChipInvariant(chips)
                self.assertEqual(header[0x17], cart_id)
                self.assertEqual((header[0x18], header[0x19]), (info.exrom, info.game))
                self.assertTrue(all(c[3] == info.load_address for c in chips))

                options = ConversionOptions(inputs=(self.path("out.crt"),), output=self.path("back.bin"))
                result = CartConverter.convert(options)
                self.assertEqual(result.direction, Direction.CRT_TO_BINARY)
                self.assertEqual(result.cart_id, cart_id)
                self.assertEqual(self.read_file("back.bin"), data)

    def test_banks_from_image_size(self):
        _, chips = self.to_crt(pattern(SIZE_128KB), "md")
        self.assertEqual(len(chips), 16)
        self.assertEqual([c[2] for c in chips], list(range(16)))

    def test_quarter_bank(self):
        _, chips = self.to_crt(pattern(SIZE_2KB), "bis")
        self.assertEqual(len(chips), 1)
        self.assertEqual(chips[0][4], SIZE_2KB)

    def test_half_bank(self):
        _, chips = self.to_crt(pattern(SIZE_4KB), "mach5")
        self.assertEqual(len(chips), 1)
        self.assertEqual(chips[0][4], SIZE_4KB)


class TestSplitAndFixedLayouts(EncoderTestCase):

    def test_simons_basic(self):
        data = pattern(SIZE_16KB)
        _, chips = self.to_crt(data, "simon")
        self.assertEqual([(c[2], c[3], c[4]) for c in chips], [(0, 0x8000, 0x2000), (0, 0xA000, 0x2000)])
        self.assertEqual(chips[0][5] + chips[1][5], data)

    def test_zaxxon(self):
        header, chips = self.to_crt(pattern(SIZE_20KB), "zaxxon")
        self.assertEqual((header[0x18], header[0x19]), (0, 0))
        self.assertEqual(
            [(c[2], c[3], c[4]) for c in chips],
            [(0, 0x8000, 0x1000), (0, 0xA000, 0x2000), (1, 0xA000, 0x2000)],
        )

    def test_stardos(self):
        header, chips = self.to_crt(pattern(SIZE_16KB), "star")
        self.assertEqual((header[0x18], header[0x19]), (0, 1))
        self.assertEqual([(c[2], c[3]) for c in chips], [(0, 0x8000), (0, 0xE000)])

    def test_easy_calc_result(self):
        header, chips = self.to_crt(pattern(SIZE_24KB), "ecr")
        self.assertEqual((header[0x18], header[0x19]), (1, 1))
        self.assertEqual([(c[2], c[3]) for c in chips], [(0, 0x8000), (0, 0xA000), (1, 0xA000)])

    def test_fun_play_bank_order(self):
        data = pattern(SIZE_128KB)
        _, chips = self.to_crt(data, "fp")
        self.assertEqual(
            [c[2] for c in chips],
            [0, 8, 16, 24, 32, 40, 48, 56, 1, 9, 17, 25, 33, 41, 49, 57],
        )
        self.assertEqual(b"".join(c[5] for c in chips), data)


class TestSpecialLayouts(EncoderTestCase):

    def test_ocean_256k_two_halves(self):
        data = pattern(SIZE_256KB)
        header, chips = self.to_crt(data, "ocean")
        self.assertEqual((header[0x18], header[0x19]), (0, 1))
        self.assertEqual(len(chips), 32)
        self.assertEqual([c[2] for c in chips], list(range(32)))
        self.assertTrue(all(c[3] == 0x8000 for c in chips[:16]))
        self.assertTrue(all(c[3] == 0xA000 for c in chips[16:]))
        self.assertEqual(b"".join(c[5] for c in chips), data)

    def test_ocean_128k_regular(self):
        header, chips = self.to_crt(pattern(SIZE_128KB), "ocean")
        self.assertEqual((header[0x18], header[0x19]), (0, 0))
        self.assertEqual(len(chips), 16)
        self.assertTrue(all(c[3] == 0x8000 and c[4] == SIZE_8KB for c in chips))

    def test_final_cartridge_plus_24k_is_shifted(self):
        data = pattern(SIZE_24KB)
        _, chips = self.to_crt(data, "fcp")
        self.assertEqual(len(chips), 1)
        _, _, bank, address, length, payload = chips[0]
        self.assertEqual((bank, address, length), (0, 0x0000, SIZE_32KB))
        self.assertEqual(payload[:0x2000], b"\xff" * 0x2000)
        self.assertEqual(payload[0x2000:], data)

    def test_final_cartridge_plus_32k_is_untouched(self):
        data = pattern(SIZE_32KB)
        _, chips = self.to_crt(data, "fcp")
        self.assertEqual(chips[0][5], data)

    def test_unsupported_target(self):
        with self.assertRaises(ConversionError) as cm:
            self.to_crt(pattern(SIZE_8KB), "expert")
        self.assertEqual(cm.exception.kind, ErrorKind.UnsupportedConversion)
        self.assertFalse(os.path.exists(self.path("out.crt")))


class TestEasyFlash(EncoderTestCase):

    def _image(self):
        data = bytearray(b"\xff" * SIZE_1024KB)
        data[0:SIZE_8KB] = pattern(SIZE_8KB, seed=1)
        data[5 * SIZE_16KB + SIZE_8KB:6 * SIZE_16KB] = pattern(SIZE_8KB, seed=2)
        return bytes(data)

    def test_empty_halves_are_omitted(self):
        header, chips = self.to_crt(self._image(), "easy")
        self.assertEqual((header[0x18], header[0x19]), (0, 0))
        self.assertEqual([(c[1], c[2], c[3]) for c in chips], [(2, 0, 0x8000), (2, 5, 0xA000)])
        self.assertChipInvariant(chips)

    def test_keep_empty_banks(self):
        _, chips = self.to_crt(self._image(), "easy", keep_empty_banks=True)
        self.assertEqual(len(chips), 128)

    def test_round_trip(self):
        image = self._image()
        self.to_crt(image, "easy")
        options = ConversionOptions(inputs=(self.path("out.crt"),), output=self.path("back.bin"))
        CartConverter.convert(options)
        self.assertEqual(self.read_file("back.bin"), image)


class TestSizeChecks(EncoderTestCase):

    def test_size_mismatch(self):
        with self.assertRaises(ConversionError) as cm:
            self.to_crt(pattern(SIZE_16KB), "ar5")
        self.assertEqual(cm.exception.kind, ErrorKind.InvalidSize)
        self.assertIn("doesn't match Action Replay V5 requirements", cm.exception.message)

    def test_padding_rounds_up(self):
        data = pattern(40000)
        _, chips = self.to_crt(data, "md", pad=True)
        self.assertEqual(sum(c[4] for c in chips), SIZE_64KB)
        payload = b"".join(c[5] for c in chips)
        self.assertEqual(payload[:40000], data)
        self.assertEqual(payload[40000:], b"\xff" * (SIZE_64KB - 40000))

    def test_pad_size(self):
        ocean_sizes = CART_INFO[CartridgeId.OCEAN].sizes
        self.assertEqual(pad_size(SIZE_8KB + 1, ocean_sizes), SIZE_32KB)
        self.assertEqual(pad_size(SIZE_32KB + 1, ocean_sizes), SIZE_128KB)
        self.assertEqual(pad_size(SIZE_128KB, ocean_sizes), SIZE_128KB)
        with self.assertRaises(ConversionError) as cm:
            pad_size(SIZE_1024KB, ocean_sizes)
        self.assertEqual(cm.exception.kind, ErrorKind.InvalidSize)


class TestCrtToBinary(EncoderTestCase):

    def test_payloads_are_concatenated(self):
        data = pattern(SIZE_32KB)
        self.to_crt(data, "ar5")
        reporter = RecordingReporter()
        options = ConversionOptions(inputs=(self.path("out.crt"),), output=self.path("back.bin"))
        CartConverter.convert(options, reporter)
        self.assertEqual(self.read_file("back.bin"), data)
        self.assertEqual(reporter.lines[-1], "Conversion from Action Replay V5 .crt to binary format successful.")

    def test_prg_output_carries_load_address(self):
        data = pattern(SIZE_8KB)
        self.to_crt(data, "epyx")
        options = ConversionOptions(inputs=(self.path("out.crt"),), output=self.path("out.prg"), target="prg")
        CartConverter.convert(options)
        self.assertEqual(self.read_file("out.prg"), b"\x00\x80" + data)

    def test_crt_to_crt_is_rejected(self):
        self.to_crt(pattern(SIZE_8KB), "epyx")
        options = ConversionOptions(inputs=(self.path("out.crt"),), output=self.path("again.crt"), target="ocean")
        with self.assertRaises(ConversionError) as cm:
            CartConverter.convert(options)
        self.assertEqual(cm.exception.kind, ErrorKind.AlreadyContainer)

    def test_unknown_id_leaves_no_output(self):
        source = self.write_file("bad.crt", crt_header(9999) + chip(pattern(SIZE_8KB)))
        options = ConversionOptions(inputs=(source,), output=self.path("bad.bin"))
        with self.assertRaises(ConversionError) as cm:
            CartConverter.convert(options)
        self.assertEqual(cm.exception.kind, ErrorKind.UnknownHardwareId)
        self.assertFalse(os.path.exists(self.path("bad.bin")))


class TestOrchestratorChecks(EncoderTestCase):

    def test_output_equals_input(self):
        source = self.write_file("in.bin", pattern(SIZE_8KB))
        with self.assertRaises(ConversionError) as cm:
            CartConverter.convert(ConversionOptions(inputs=(source,), output=source, target="normal"))
        self.assertEqual(cm.exception.kind, ErrorKind.UnsupportedConversion)

    def test_no_inputs(self):
        with self.assertRaises(ConversionError) as cm:
            CartConverter.convert(ConversionOptions(inputs=(), output=self.path("x.crt")))
        self.assertEqual(cm.exception.kind, ErrorKind.UnsupportedConversion)

    def test_several_inputs_need_a_multiplexing_target(self):
        first = self.write_file("a.bin", pattern(SIZE_8KB))
        second = self.write_file("b.bin", pattern(SIZE_8KB))
        options = ConversionOptions(inputs=(first, second), output=self.path("x.crt"), target="normal")
        with self.assertRaises(ConversionError) as cm:
            CartConverter.convert(options)
        self.assertEqual(cm.exception.kind, ErrorKind.TooManyInputs)

    def test_more_than_32_inputs(self):
        source = self.write_file("a.bin", pattern(SIZE_8KB))
        options = ConversionOptions(inputs=(source,) * 33, output=self.path("x.crt"), target="rep256")
        with self.assertRaises(ConversionError) as cm:
            CartConverter.convert(options)
        self.assertEqual(cm.exception.kind, ErrorKind.TooManyInputs)

    def test_summary_lines(self):
        source = self.write_file("in.bin", pattern(SIZE_8KB))
        reporter = RecordingReporter()
        options = ConversionOptions(inputs=(source,), output=self.path("out.crt"), target="normal")
        result = CartConverter.convert(options, reporter)
        self.assertEqual(reporter.lines, [
            f"Input file : {source}",
            f"Output file : {self.path('out.crt')}",
            "Conversion from binary format to Generic Cartridge .crt successful.",
        ])
        self.assertEqual(result.direction, Direction.BINARY_TO_CRT)
        self.assertEqual(result.size, SIZE_8KB)

    def test_quiet_mode_reports_nothing(self):
        source = self.write_file("in.bin", pattern(SIZE_8KB))
        reporter = RecordingReporter()
        options = ConversionOptions(inputs=(source,), output=self.path("out.crt"), target="normal", quiet=True)
        CartConverter.convert(options, reporter)
        self.assertEqual(reporter.lines, [])


if __name__ == "__main__":
    unittest.main()
