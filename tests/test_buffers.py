import struct
import unittest

from audio_db_tags.buffers import (
    TextEncoding,
    decode_text,
    read_count_prefixed,
    read_count_prefixed_bytes,
    read_count_prefixed_text,
    read_encoding,
    read_null_terminated,
)
from audio_db_tags.cursor import BitCursor, Endian
from audio_db_tags.errors import MalformedFieldError, OutOfBoundsError, TextEncodingError


class TestNullTerminatedText(unittest.TestCase):
    def test_single_byte_stops_at_terminator(self) -> None:
        cursor = BitCursor.over(b"Artist\x00rest")
        text, cursor = decode_text(cursor, TextEncoding.SINGLE_BYTE)
        self.assertEqual(text, "Artist")
        self.assertEqual(cursor.byte_offset, 7)

    def test_utf16_little_endian_bom(self) -> None:
        cursor = BitCursor.over(bytes([0xFF, 0xFE, 0x41, 0x00, 0x00, 0x00]))
        text, cursor = decode_text(cursor, TextEncoding.UTF16_BOM)
        self.assertEqual(text, "A")
        self.assertTrue(cursor.at_end)

    def test_utf16_big_endian_bom(self) -> None:
        raw = b"\xfe\xff" + "Hé".encode("utf-16-be") + b"\x00\x00"
        text, cursor = decode_text(BitCursor.over(raw), TextEncoding.UTF16_BOM)
        self.assertEqual(text, "Hé")
        self.assertTrue(cursor.at_end)

    def test_utf16_terminator_must_be_unit_aligned(self) -> None:
        # "AĀ" little-endian is 41 00 00 01: the zero pair straddles two units
        raw = b"\xff\xfe" + "AĀ".encode("utf-16-le") + b"\x00\x00" + b"tail"
        text, cursor = decode_text(BitCursor.over(raw), TextEncoding.UTF16_BOM)
        self.assertEqual(text, "AĀ")
        self.assertEqual(cursor.byte_offset, len(raw) - 4)

    def test_missing_terminator_fails(self) -> None:
        with self.assertRaises(OutOfBoundsError):
            decode_text(BitCursor.over(b"no end"), TextEncoding.SINGLE_BYTE, field="mime_type")

    def test_terminator_outside_window_is_not_found(self) -> None:
        window, _ = BitCursor.over(b"abc\x00").split(3)
        with self.assertRaises(OutOfBoundsError):
            read_null_terminated(window)


class TestSizedText(unittest.TestCase):
    def test_single_byte_trims_trailing_nuls(self) -> None:
        text, cursor = decode_text(BitCursor.over(b"Title\x00\x00"), TextEncoding.SINGLE_BYTE, 7)
        self.assertEqual(text, "Title")
        self.assertTrue(cursor.at_end)

    def test_utf16_deducts_bom_before_reading_units(self) -> None:
        raw = b"\xff\xfe" + "Björk".encode("utf-16-le") + b"next"
        size = 2 + 10
        text, cursor = decode_text(BitCursor.over(raw), TextEncoding.UTF16_BOM, size)
        self.assertEqual(text, "Björk")
        self.assertEqual(cursor.byte_offset, size)

    def test_odd_utf16_size_is_malformed(self) -> None:
        with self.assertRaises(MalformedFieldError):
            decode_text(BitCursor.over(b"\xff\xfeA\x00\x00"), TextEncoding.UTF16_BOM, 5)

    def test_zero_size_is_empty(self) -> None:
        text, cursor = decode_text(BitCursor.over(b""), TextEncoding.UTF16_BOM, 0)
        self.assertEqual(text, "")
        self.assertEqual(cursor.offset, 0)

    def test_invalid_utf8_fails(self) -> None:
        with self.assertRaises(TextEncodingError):
            decode_text(BitCursor.over(b"\xc3\x28"), TextEncoding.SINGLE_BYTE, 2)

    def test_unpaired_surrogate_fails(self) -> None:
        with self.assertRaises(TextEncodingError):
            decode_text(BitCursor.over(b"\xff\xfe\x00\xd8"), TextEncoding.UTF16_BOM, 4)


class TestEncodingByte(unittest.TestCase):
    def test_known_encodings(self) -> None:
        encoding, cursor = read_encoding(BitCursor.over(b"\x01"))
        self.assertIs(encoding, TextEncoding.UTF16_BOM)
        self.assertEqual(cursor.byte_offset, 1)

    def test_unknown_encoding_fails(self) -> None:
        with self.assertRaises(TextEncodingError) as ctx:
            read_encoding(BitCursor.over(b"\x03"))
        self.assertEqual(ctx.exception.field, "encoding")


class TestCountPrefixed(unittest.TestCase):
    def test_little_endian_count(self) -> None:
        text, cursor = read_count_prefixed_text(
            BitCursor.over(b"\x05\x00\x00\x00hello!"), Endian.LITTLE
        )
        self.assertEqual(text, "hello")
        self.assertEqual(cursor.byte_offset, 9)

    def test_big_endian_bytes(self) -> None:
        data, _ = read_count_prefixed_bytes(BitCursor.over(b"\x00\x00\x00\x02\xaa\xbb"), Endian.BIG)
        self.assertEqual(data, b"\xaa\xbb")

    def test_count_larger_than_buffer_fails(self) -> None:
        with self.assertRaises(OutOfBoundsError):
            read_count_prefixed_bytes(BitCursor.over(b"\x10\x00\x00\x00abc"), Endian.LITTLE)

    def test_sequence_of_elements(self) -> None:
        raw = struct.pack("<I", 2) + struct.pack("<I", 1) + b"a" + struct.pack("<I", 2) + b"bc"
        items, cursor = read_count_prefixed(
            BitCursor.over(raw),
            Endian.LITTLE,
            lambda c, index: read_count_prefixed_text(c, Endian.LITTLE, field=f"item[{index}]"),
        )
        self.assertEqual(items, ["a", "bc"])
        self.assertTrue(cursor.at_end)


if __name__ == "__main__":
    unittest.main()
