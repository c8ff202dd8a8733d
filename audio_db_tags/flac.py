"""FLAC metadata block decoder.

A FLAC stream opens with ``fLaC`` followed by metadata blocks. Each block
header packs a last-block flag, a 7-bit type and a 24-bit body size. The
container is big-endian except for the Vorbis comment block, which keeps
Vorbis' little-endian layout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, ClassVar, Dict, List, Optional, Tuple, Union

from .buffers import read_count_prefixed, read_count_prefixed_bytes, read_count_prefixed_text
from .cursor import BitCursor, Buffer, Endian
from .errors import (
    DecodeError,
    MagicMismatchError,
    MalformedFieldError,
    UnsupportedBlockTypeError,
)
from .records import to_record

logger = logging.getLogger(__name__)

MAGIC = b"fLaC"
SEEKPOINT_SIZE = 18


class BlockType(IntEnum):
    STREAMINFO = 0
    PADDING = 1
    SEEKTABLE = 3
    VORBIS_COMMENT = 4
    PICTURE = 6


class PictureKind(IntEnum):
    OTHER = 0
    FILE_ICON_32X32 = 1
    OTHER_FILE_ICON = 2
    FRONT_COVER = 3
    BACK_COVER = 4
    LEAFLET_PAGE = 5
    MEDIA = 6
    LEAD_ARTIST = 7
    ARTIST = 8
    CONDUCTOR = 9
    BAND = 10
    COMPOSER = 11
    LYRICIST = 12
    RECORDING_LOCATION = 13
    DURING_RECORDING = 14
    DURING_PERFORMANCE = 15
    MOVIE_CAPTURE = 16
    BRIGHT_COLOURED_FISH = 17
    ILLUSTRATION = 18
    ARTIST_LOGOTYPE = 19
    PUBLISHER_LOGOTYPE = 20


@dataclass(frozen=True, slots=True)
class StreamInfo:
    block_type: ClassVar[BlockType] = BlockType.STREAMINFO

    min_block_size: int
    max_block_size: int
    min_frame_size: int
    max_frame_size: int
    sample_rate: int
    channels: int
    bits_per_sample: int
    total_samples: int
    md5_signature: bytes

    @property
    def duration_seconds(self) -> Optional[float]:
        if not self.sample_rate or not self.total_samples:
            return None
        return self.total_samples / self.sample_rate


@dataclass(frozen=True, slots=True)
class Padding:
    block_type: ClassVar[BlockType] = BlockType.PADDING

    data: bytes


@dataclass(frozen=True, slots=True)
class SeekPoint:
    first_sample: int
    offset: int
    samples: int


@dataclass(frozen=True, slots=True)
class SeekTable:
    block_type: ClassVar[BlockType] = BlockType.SEEKTABLE

    seekpoints: Tuple[SeekPoint, ...]


@dataclass(frozen=True, slots=True)
class VorbisComment:
    block_type: ClassVar[BlockType] = BlockType.VORBIS_COMMENT

    vendor: str
    comments: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Picture:
    block_type: ClassVar[BlockType] = BlockType.PICTURE

    kind: PictureKind
    mime_type: str
    description: str
    width: int
    height: int
    depth: int
    colours: int
    data: bytes


MetadataBlock = Union[StreamInfo, Padding, SeekTable, VorbisComment, Picture]


@dataclass(frozen=True, slots=True)
class FlacDocument:
    blocks: Tuple[MetadataBlock, ...]

    @property
    def stream_info(self) -> Optional[StreamInfo]:
        return next((b for b in self.blocks if isinstance(b, StreamInfo)), None)

    @property
    def vorbis_comment(self) -> Optional[VorbisComment]:
        return next((b for b in self.blocks if isinstance(b, VorbisComment)), None)

    @property
    def pictures(self) -> List[Picture]:
        return [b for b in self.blocks if isinstance(b, Picture)]

    def comments_dict(self) -> Dict[str, List[str]]:
        """Vorbis comments grouped by upper-cased key, values in file order."""
        grouped: Dict[str, List[str]] = {}
        comment = self.vorbis_comment
        if comment is None:
            return grouped
        for entry in comment.comments:
            key, sep, value = entry.partition("=")
            if not sep:
                continue
            grouped.setdefault(key.upper(), []).append(value)
        return grouped

    def to_record(self, *, include_binary: bool = False) -> Dict[str, object]:
        return {
            "format": "flac",
            "blocks": [to_record(block, include_binary=include_binary) for block in self.blocks],
        }


def _read_stream_info(body: BitCursor) -> Tuple[StreamInfo, BitCursor]:
    min_block_size, body = body.read_u16(field="min_block_size")
    max_block_size, body = body.read_u16(field="max_block_size")
    min_frame_size, body = body.read_u24(field="min_frame_size")
    max_frame_size, body = body.read_u24(field="max_frame_size")
    sample_rate, body = body.read_bits(20, field="sample_rate")
    channels, body = body.read_bits(3, field="channels")
    bits_per_sample, body = body.read_bits(5, field="bits_per_sample")
    total_samples, body = body.read_bits(36, field="total_samples")
    md5_signature, body = body.read_bytes(16, field="md5_signature")
    info = StreamInfo(
        min_block_size=min_block_size,
        max_block_size=max_block_size,
        min_frame_size=min_frame_size,
        max_frame_size=max_frame_size,
        sample_rate=sample_rate,
        channels=channels + 1,
        bits_per_sample=bits_per_sample + 1,
        total_samples=total_samples,
        md5_signature=md5_signature,
    )
    return info, body


def _read_padding(body: BitCursor) -> Tuple[Padding, BitCursor]:
    data, body = body.read_bytes(body.remaining_bytes, field="padding")
    return Padding(data=data), body


def _read_seekpoint(cursor: BitCursor) -> Tuple[SeekPoint, BitCursor]:
    first_sample, cursor = cursor.read_u64(field="seekpoint.first_sample")
    offset, cursor = cursor.read_u64(field="seekpoint.offset")
    samples, cursor = cursor.read_u16(field="seekpoint.samples")
    return SeekPoint(first_sample=first_sample, offset=offset, samples=samples), cursor


def _read_seektable(body: BitCursor) -> Tuple[SeekTable, BitCursor]:
    size = body.remaining_bytes
    if size % SEEKPOINT_SIZE:
        raise MalformedFieldError(
            f"Seek table size {size} is not a multiple of {SEEKPOINT_SIZE}",
            field="seekpoints",
            offset=body.byte_offset,
        )
    points = []
    for _ in range(size // SEEKPOINT_SIZE):
        point, body = _read_seekpoint(body)
        points.append(point)
    return SeekTable(seekpoints=tuple(points)), body


def _read_vorbis_comment(body: BitCursor) -> Tuple[VorbisComment, BitCursor]:
    vendor, body = read_count_prefixed_text(body, Endian.LITTLE, field="vendor")
    comments, body = read_count_prefixed(
        body,
        Endian.LITTLE,
        lambda cursor, index: read_count_prefixed_text(
            cursor, Endian.LITTLE, field=f"comments[{index}]"
        ),
        field="comments",
    )
    return VorbisComment(vendor=vendor, comments=tuple(comments)), body


def _read_picture_kind(body: BitCursor) -> Tuple[PictureKind, BitCursor]:
    start = body.byte_offset
    value, body = body.read_u32(field="kind")
    try:
        return PictureKind(value), body
    except ValueError:
        raise MalformedFieldError(
            f"Unknown picture kind {value}", field="kind", offset=start
        ) from None


def _read_picture(body: BitCursor) -> Tuple[Picture, BitCursor]:
    kind, body = _read_picture_kind(body)
    mime_type, body = read_count_prefixed_text(body, Endian.BIG, field="mime_type")
    description, body = read_count_prefixed_text(body, Endian.BIG, field="description")
    width, body = body.read_u32(field="width")
    height, body = body.read_u32(field="height")
    depth, body = body.read_u32(field="depth")
    colours, body = body.read_u32(field="colours")
    data, body = read_count_prefixed_bytes(body, Endian.BIG, field="data")
    picture = Picture(
        kind=kind,
        mime_type=mime_type,
        description=description,
        width=width,
        height=height,
        depth=depth,
        colours=colours,
        data=data,
    )
    return picture, body


BLOCK_DECODERS: Dict[BlockType, Callable[[BitCursor], Tuple[MetadataBlock, BitCursor]]] = {
    BlockType.STREAMINFO: _read_stream_info,
    BlockType.PADDING: _read_padding,
    BlockType.SEEKTABLE: _read_seektable,
    BlockType.VORBIS_COMMENT: _read_vorbis_comment,
    BlockType.PICTURE: _read_picture,
}


@dataclass(frozen=True, slots=True)
class BlockHeader:
    is_last: bool
    block_type: int
    size: int


def _read_block_header(cursor: BitCursor) -> Tuple[BlockHeader, BitCursor]:
    is_last, cursor = cursor.read_flag(field="is_last")
    block_type, cursor = cursor.read_bits(7, field="block_type")
    size, cursor = cursor.read_u24(field="size")
    return BlockHeader(is_last=is_last, block_type=block_type, size=size), cursor


def _read_block(cursor: BitCursor, header: BlockHeader) -> Tuple[MetadataBlock, BitCursor]:
    try:
        block_type = BlockType(header.block_type)
    except ValueError:
        raise UnsupportedBlockTypeError(header.block_type, offset=cursor.byte_offset) from None
    body, rest = cursor.split(header.size, field=block_type.name.lower())
    block, body = BLOCK_DECODERS[block_type](body)
    body.expect_exhausted(f"{block_type.name} block")
    return block, rest


def decode_flac(buffer: Buffer) -> FlacDocument:
    """Decode every metadata block of a FLAC stream held in ``buffer``."""
    if bytes(buffer[: len(MAGIC)]) != MAGIC:
        raise MagicMismatchError("Not a FLAC stream: missing fLaC marker", field="magic", offset=0)
    cursor = BitCursor.over(buffer).skip_bytes(len(MAGIC))
    blocks: List[MetadataBlock] = []
    while True:
        index = len(blocks)
        try:
            header, cursor = _read_block_header(cursor)
            logger.debug(
                "Block %d: type=%d size=%d last=%s",
                index,
                header.block_type,
                header.size,
                header.is_last,
            )
            block, cursor = _read_block(cursor, header)
        except DecodeError as exc:
            exc.add_context(f"block {index}")
            raise
        blocks.append(block)
        if header.is_last:
            return FlacDocument(blocks=tuple(blocks))
