#!/usr/bin/python3

import unittest

from disk_speed_test.errors import InvalidSizeFormat, SizeTooSmall
from disk_speed_test.sizes import SizeSpec, compute_block_count, format_bytes, format_rate, parse_size, to_bytes
from disk_speed_test.transfer import TransferConfig


class TestParseSize(unittest.TestCase):
    def test_units_expand_to_powers_of_1024(self):
        self.assertEqual(to_bytes(parse_size("2G")), 2 * 1024 * 1024 * 1024)
        self.assertEqual(to_bytes(parse_size("512M")), 512 * 1024 * 1024)
        self.assertEqual(to_bytes(parse_size("128K")), 128 * 1024)
        self.assertEqual(to_bytes(parse_size("1024M")), to_bytes(parse_size("1G")))

    def test_large_sizes_do_not_overflow(self):
        self.assertEqual(parse_size("8192G").to_bytes(), 8192 * 1024**3)

    def test_lowercase_and_whitespace(self):
        self.assertEqual(parse_size(" 512m "), SizeSpec(512, "M"))
        self.assertEqual(str(parse_size("4g")), "4G")

    def test_invalid_formats(self):
        for text in ["", "4", "G", "1.5G", "4T", "-1G", "1GB", "0G", "4 G", None]:
            with self.subTest(text=text):
                with self.assertRaises(InvalidSizeFormat):
                    parse_size(text)

    def test_error_names_the_input(self):
        with self.assertRaises(InvalidSizeFormat) as ctx:
            parse_size("12Q")
        self.assertIn("12Q", str(ctx.exception))

    def test_size_spec_rejects_zero_and_unknown_unit(self):
        with self.assertRaises(InvalidSizeFormat):
            SizeSpec(0, "K")
        with self.assertRaises(InvalidSizeFormat):
            SizeSpec(1, "T")


class TestBlockCount(unittest.TestCase):
    def test_floor_division(self):
        self.assertEqual(compute_block_count(4 * 1024**3, 1024**2), 4096)
        self.assertEqual(compute_block_count(10 * 1024 + 512, 1024), 10)

    def test_smaller_than_one_block(self):
        with self.assertRaises(SizeTooSmall):
            compute_block_count(1000, 1024)
        with self.assertRaises(SizeTooSmall):
            compute_block_count(1024, 0)

    def test_transfer_config_validates(self):
        with self.assertRaises(SizeTooSmall):
            TransferConfig(total_bytes=512 * 1024, block_bytes=1024**2)
        with self.assertRaises(ValueError):
            TransferConfig(total_bytes=4096, block_bytes=1024, timeout_seconds=-1)

    def test_payload_rounds_down_to_whole_blocks(self):
        config = TransferConfig(total_bytes=10 * 1024 + 512, block_bytes=1024)
        self.assertEqual(config.block_count, 10)
        self.assertEqual(config.payload_bytes, 10 * 1024)


class TestFormatting(unittest.TestCase):
    def test_format_rate(self):
        self.assertEqual(format_rate(123.4e6), "123.4 MB/s")
        self.assertEqual(format_rate(2.5e9), "2.5 GB/s")
        self.assertEqual(format_rate(512e3), "512.0 kB/s")
        self.assertEqual(format_rate(None), "N/A")

    def test_format_bytes(self):
        self.assertEqual(format_bytes(500), "500 bytes")
        self.assertEqual(format_bytes(67108864), "67.1 MB")


if __name__ == "__main__":
    unittest.main()
