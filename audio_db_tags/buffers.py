"""Shared readers for the variable-length values found in FLAC and ID3v2.

Two termination policies exist: *sized* values know their byte count up
front (from a count prefix or from what is left of a frame), *null-terminated*
values run until a zero unit that is consumed but not returned. Text is
either single-byte or 16-bit units introduced by a byte-order mark.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, List, Optional, Tuple, TypeVar

from .cursor import BitCursor, Endian
from .errors import MalformedFieldError, OutOfBoundsError, TextEncodingError

T = TypeVar("T")

LITTLE_ENDIAN_BOM = b"\xff\xfe"


class TextEncoding(IntEnum):
    SINGLE_BYTE = 0
    UTF16_BOM = 1

    @classmethod
    def from_byte(cls, value: int, *, field: str, offset: int) -> "TextEncoding":
        try:
            return cls(value)
        except ValueError:
            raise TextEncodingError(
                f"Unknown text encoding byte {value}", field=field, offset=offset
            ) from None


def read_encoding(cursor: BitCursor, *, field: str = "encoding") -> Tuple[TextEncoding, BitCursor]:
    start = cursor.byte_offset
    value, cursor = cursor.read_u8(field=field)
    return TextEncoding.from_byte(value, field=field, offset=start), cursor


def _terminator_length(cursor: BitCursor, unit: int, field: str) -> int:
    """Byte length of the value before the next zero unit of ``unit`` bytes."""
    start = cursor.byte_offset
    end = cursor.limit // 8
    zero = b"\x00" * unit
    pos = cursor.data.find(zero, start, end)
    while pos != -1 and (pos - start) % unit:
        pos = cursor.data.find(zero, pos + 1, end)
    if pos == -1:
        raise OutOfBoundsError(
            "Missing null terminator", field=field, offset=start
        )
    return pos - start


def read_null_terminated(
    cursor: BitCursor, unit: int = 1, *, field: str = "string"
) -> Tuple[bytes, BitCursor]:
    """Read units until a zero unit; the terminator is consumed and dropped."""
    length = _terminator_length(cursor, unit, field)
    raw, cursor = cursor.read_bytes(length, field=field)
    return raw, cursor.skip_bytes(unit, field=field)


def _decode(raw: bytes, codec: str, field: str, offset: int) -> str:
    try:
        text = raw.decode(codec)
    except UnicodeDecodeError as exc:
        raise TextEncodingError(
            f"Invalid {codec} text: {exc.reason}", field=field, offset=offset
        ) from exc
    return text.rstrip("\x00")


def decode_text(
    cursor: BitCursor,
    encoding: TextEncoding,
    size: Optional[int] = None,
    *,
    field: str = "text",
) -> Tuple[str, BitCursor]:
    """Decode a text value.

    With ``size`` the value spans exactly that many bytes, otherwise it is
    null-terminated. UTF-16 values start with a byte-order mark which counts
    towards ``size``.
    """
    start = cursor.byte_offset
    if size == 0:
        return "", cursor
    if encoding is TextEncoding.SINGLE_BYTE:
        if size is None:
            raw, cursor = read_null_terminated(cursor, 1, field=field)
        else:
            raw, cursor = cursor.read_bytes(size, field=field)
        return _decode(raw, "utf-8", field, start), cursor

    if size is not None and (size < 2 or size % 2):
        raise MalformedFieldError(
            f"UTF-16 text needs an even size of at least 2 bytes, got {size}",
            field=field,
            offset=start,
        )
    bom, cursor = cursor.read_bytes(2, field=f"{field}.bom")
    codec = "utf-16-le" if bom == LITTLE_ENDIAN_BOM else "utf-16-be"
    if size is None:
        raw, cursor = read_null_terminated(cursor, 2, field=field)
    else:
        units = size // 2 - 1
        raw, cursor = cursor.read_bytes(units * 2, field=field)
    return _decode(raw, codec, field, start), cursor


def read_count(
    cursor: BitCursor, endian: Endian, *, field: str
) -> Tuple[int, BitCursor]:
    return cursor.read_u32(endian, field=f"{field}.count")


def read_count_prefixed_bytes(
    cursor: BitCursor, endian: Endian, *, field: str = "bytes"
) -> Tuple[bytes, BitCursor]:
    count, cursor = read_count(cursor, endian, field=field)
    return cursor.read_bytes(count, field=field)


def read_count_prefixed_text(
    cursor: BitCursor, endian: Endian, *, field: str = "string"
) -> Tuple[str, BitCursor]:
    start = cursor.byte_offset
    raw, cursor = read_count_prefixed_bytes(cursor, endian, field=field)
    try:
        return raw.decode("utf-8"), cursor
    except UnicodeDecodeError as exc:
        raise TextEncodingError(
            f"Invalid utf-8 text: {exc.reason}", field=field, offset=start
        ) from exc


def read_count_prefixed(
    cursor: BitCursor,
    endian: Endian,
    reader: Callable[[BitCursor, int], Tuple[T, BitCursor]],
    *,
    field: str = "items",
) -> Tuple[List[T], BitCursor]:
    """Read a 32-bit element count and then that many elements.

    ``reader`` receives the cursor and the element index.
    """
    count, cursor = read_count(cursor, endian, field=field)
    items: List[T] = []
    for index in range(count):
        item, cursor = reader(cursor, index)
        items.append(item)
    return items, cursor
