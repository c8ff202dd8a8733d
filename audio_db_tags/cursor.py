from __future__ import annotations

import mmap
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Union

from .errors import MalformedFieldError, OutOfBoundsError

Buffer = Union[bytes, bytearray, memoryview, mmap.mmap]

MAX_READ_BITS = 128


class Endian(Enum):
    BIG = "big"
    LITTLE = "little"


@dataclass(frozen=True, slots=True)
class BitCursor:
    """Immutable read position inside a byte buffer, measured in bits.

    Every read returns the decoded value together with a new cursor; the
    original cursor is left untouched so callers can measure how far a
    sub-decoder advanced. ``limit`` is the bit offset reads may not cross and
    is narrowed by :meth:`split` to keep a block or frame body from reading
    into its neighbours.
    """

    data: Buffer = field(repr=False)
    offset: int
    limit: int

    @classmethod
    def over(cls, data: Buffer) -> "BitCursor":
        # memoryview has no find(); readers search the buffer for terminators
        if isinstance(data, memoryview):
            data = data.tobytes()
        return cls(data=data, offset=0, limit=len(data) * 8)

    @property
    def byte_offset(self) -> int:
        return self.offset // 8

    @property
    def remaining_bits(self) -> int:
        return self.limit - self.offset

    @property
    def remaining_bytes(self) -> int:
        return self.remaining_bits // 8

    @property
    def at_end(self) -> bool:
        return self.offset >= self.limit

    def bytes_since(self, earlier: "BitCursor") -> int:
        return (self.offset - earlier.offset) // 8

    def _require(self, bits: int, field_name: Optional[str]) -> None:
        if bits > self.remaining_bits:
            raise OutOfBoundsError(
                f"Need {bits} bits but only {self.remaining_bits} remain",
                field=field_name,
                offset=self.byte_offset,
            )

    def _require_aligned(self) -> None:
        if self.offset % 8:
            raise ValueError(f"Cursor is not byte aligned (bit offset {self.offset})")

    def read_bits(
        self,
        count: int,
        endian: Endian = Endian.BIG,
        *,
        field: Optional[str] = None,
    ) -> Tuple[int, "BitCursor"]:
        """Read ``count`` bits as an unsigned integer.

        The enclosing byte-aligned span is loaded and the value is shifted and
        masked out of it, so fields such as the 20-bit FLAC sample rate need
        not start or end on a byte boundary. Little-endian reads reorder whole
        bytes and therefore need ``count`` to be a multiple of eight.
        """
        if not 1 <= count <= MAX_READ_BITS:
            raise ValueError(f"Can read 1..{MAX_READ_BITS} bits at a time, not {count}")
        if endian is Endian.LITTLE and count % 8:
            raise ValueError("Little-endian reads need a whole number of bytes")
        self._require(count, field)
        first, lead = divmod(self.offset, 8)
        span = (lead + count + 7) // 8
        chunk = int.from_bytes(self.data[first : first + span], "big")
        value = (chunk >> (span * 8 - lead - count)) & ((1 << count) - 1)
        if endian is Endian.LITTLE:
            value = int.from_bytes(value.to_bytes(count // 8, "big"), "little")
        return value, replace(self, offset=self.offset + count)

    def read_flag(self, *, field: Optional[str] = None) -> Tuple[bool, "BitCursor"]:
        value, cursor = self.read_bits(1, field=field)
        return bool(value), cursor

    def read_u8(self, *, field: Optional[str] = None) -> Tuple[int, "BitCursor"]:
        return self.read_bits(8, field=field)

    def read_u16(
        self, endian: Endian = Endian.BIG, *, field: Optional[str] = None
    ) -> Tuple[int, "BitCursor"]:
        return self.read_bits(16, endian, field=field)

    def read_u24(
        self, endian: Endian = Endian.BIG, *, field: Optional[str] = None
    ) -> Tuple[int, "BitCursor"]:
        return self.read_bits(24, endian, field=field)

    def read_u32(
        self, endian: Endian = Endian.BIG, *, field: Optional[str] = None
    ) -> Tuple[int, "BitCursor"]:
        return self.read_bits(32, endian, field=field)

    def read_u64(
        self, endian: Endian = Endian.BIG, *, field: Optional[str] = None
    ) -> Tuple[int, "BitCursor"]:
        return self.read_bits(64, endian, field=field)

    def read_bytes(self, count: int, *, field: Optional[str] = None) -> Tuple[bytes, "BitCursor"]:
        """Copy ``count`` bytes out of the buffer."""
        if count < 0:
            raise MalformedFieldError(
                f"Negative byte count {count}", field=field, offset=self.byte_offset
            )
        self._require_aligned()
        self._require(count * 8, field)
        start = self.byte_offset
        return bytes(self.data[start : start + count]), replace(self, offset=self.offset + count * 8)

    def skip_bytes(self, count: int, *, field: Optional[str] = None) -> "BitCursor":
        self._require_aligned()
        self._require(count * 8, field)
        return replace(self, offset=self.offset + count * 8)

    def split(self, count: int, *, field: Optional[str] = None) -> Tuple["BitCursor", "BitCursor"]:
        """Return a window over the next ``count`` bytes and the cursor after it."""
        self._require_aligned()
        self._require(count * 8, field)
        end = self.offset + count * 8
        return replace(self, limit=end), replace(self, offset=end)

    def expect_exhausted(self, what: str) -> None:
        if self.remaining_bits:
            raise MalformedFieldError(
                f"{what} left {self.remaining_bits // 8} declared bytes unread",
                offset=self.byte_offset,
            )


def decode_synchsafe(raw: bytes) -> int:
    """Decode a synchsafe integer: seven significant bits per byte, most significant first."""
    value = 0
    for byte in raw:
        value = (value << 7) | (byte & 0x7F)
    return value


def read_synchsafe28(cursor: BitCursor, *, field: Optional[str] = None) -> Tuple[int, BitCursor]:
    raw, cursor = cursor.read_bytes(4, field=field)
    return decode_synchsafe(raw), cursor
