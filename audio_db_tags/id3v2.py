"""ID3v2 tag decoder.

Layout handled here::

    "ID3" major minor flags(abc00000) size(synchsafe 28 bit)
    frame*: id(4) size(32 bit) flags(abc00000 ijk00000) [extras] body
    padding (zero bytes up to the declared tag size)

Only the frames listed in :data:`FRAME_KINDS` are understood; anything else
aborts the decode instead of being skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from .buffers import TextEncoding, decode_text, read_encoding
from .cursor import BitCursor, Buffer, read_synchsafe28
from .errors import (
    DecodeError,
    MagicMismatchError,
    MalformedFieldError,
    UnsupportedFeatureError,
    UnsupportedFrameIdError,
)
from .flac import PictureKind
from .records import to_record

logger = logging.getLogger(__name__)

MAGIC = b"ID3"
FRAME_HEADER_SIZE = 10


class FrameKind(Enum):
    TEXT_FIELD = "text_field"
    PICTURE = "picture"
    UFID = "ufid"
    COMMENT = "comment"


FRAME_KINDS: Dict[str, FrameKind] = {
    "TIT2": FrameKind.TEXT_FIELD,
    "TPE1": FrameKind.TEXT_FIELD,
    "TRCK": FrameKind.TEXT_FIELD,
    "TALB": FrameKind.TEXT_FIELD,
    "TPOS": FrameKind.TEXT_FIELD,
    "TDAT": FrameKind.TEXT_FIELD,
    "TORY": FrameKind.TEXT_FIELD,
    "TYER": FrameKind.TEXT_FIELD,
    "TPUB": FrameKind.TEXT_FIELD,
    "TMED": FrameKind.TEXT_FIELD,
    "TPE2": FrameKind.TEXT_FIELD,
    "TSO2": FrameKind.TEXT_FIELD,
    "TSOP": FrameKind.TEXT_FIELD,
    "TXXX": FrameKind.TEXT_FIELD,
    "APIC": FrameKind.PICTURE,
    "UFID": FrameKind.UFID,
    "COMM": FrameKind.COMMENT,
}


@dataclass(frozen=True, slots=True)
class TagHeader:
    major_version: int
    minor_version: int
    unsynchronisation: bool
    extended_header: bool
    experimental: bool
    size: int


@dataclass(frozen=True, slots=True)
class FrameFlags:
    tag_alter_preservation: bool
    file_alter_preservation: bool
    read_only: bool
    compression: bool
    encryption: bool
    grouping_identity: bool


@dataclass(frozen=True, slots=True)
class FrameHeader:
    frame_id: str
    size: int
    flags: FrameFlags
    decompressed_size: Optional[int] = None
    encryption_method: Optional[int] = None
    group_id: Optional[int] = None
    extra_size: int = 0

    @property
    def body_size(self) -> int:
        return self.size - self.extra_size


@dataclass(frozen=True, slots=True)
class TextField:
    frame_id: str
    text: str


@dataclass(frozen=True, slots=True)
class AttachedPicture:
    mime_type: str
    picture_type: int
    description: str
    data: bytes

    @property
    def kind(self) -> Optional[PictureKind]:
        try:
            return PictureKind(self.picture_type)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class UniqueFileIdentifier:
    owner: str
    identifier: bytes


@dataclass(frozen=True, slots=True)
class Comment:
    encoding: TextEncoding
    language: str
    description: str
    text: str


Frame = Union[TextField, AttachedPicture, UniqueFileIdentifier, Comment]


@dataclass(frozen=True, slots=True)
class Id3v2Document:
    header: TagHeader
    frames: Tuple[Frame, ...]

    def text(self, frame_id: str) -> Optional[str]:
        for frame in self.frames:
            if isinstance(frame, TextField) and frame.frame_id == frame_id:
                return frame.text
        return None

    def texts(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for frame in self.frames:
            if isinstance(frame, TextField):
                grouped.setdefault(frame.frame_id, []).append(frame.text)
        return grouped

    @property
    def pictures(self) -> List[AttachedPicture]:
        return [f for f in self.frames if isinstance(f, AttachedPicture)]

    @property
    def comments(self) -> List[Comment]:
        return [f for f in self.frames if isinstance(f, Comment)]

    def to_record(self, *, include_binary: bool = False) -> Dict[str, object]:
        return {
            "format": "id3v2",
            "header": to_record(self.header),
            "frames": [to_record(frame, include_binary=include_binary) for frame in self.frames],
        }


def _remaining(size: int, start: BitCursor, cursor: BitCursor, field: str) -> int:
    """Bytes of a frame body left after everything read since ``start``."""
    remaining = size - cursor.bytes_since(start)
    if remaining < 0:
        raise MalformedFieldError(
            f"Frame body overran its declared size by {-remaining} bytes",
            field=field,
            offset=cursor.byte_offset,
        )
    return remaining


def _read_text_field(body: BitCursor, header: FrameHeader) -> Tuple[TextField, BitCursor]:
    start = body
    encoding, body = read_encoding(body)
    size = _remaining(header.body_size, start, body, "text")
    text, body = decode_text(body, encoding, size, field="text")
    return TextField(frame_id=header.frame_id, text=text), body


def _read_picture(body: BitCursor, header: FrameHeader) -> Tuple[AttachedPicture, BitCursor]:
    start = body
    encoding, body = read_encoding(body)
    mime_type, body = decode_text(body, TextEncoding.SINGLE_BYTE, field="mime_type")
    picture_type, body = body.read_u8(field="picture_type")
    description, body = decode_text(body, encoding, field="description")
    size = _remaining(header.body_size, start, body, "data")
    data, body = body.read_bytes(size, field="data")
    picture = AttachedPicture(
        mime_type=mime_type,
        picture_type=picture_type,
        description=description,
        data=data,
    )
    return picture, body


def _read_ufid(body: BitCursor, header: FrameHeader) -> Tuple[UniqueFileIdentifier, BitCursor]:
    start = body
    owner, body = decode_text(body, TextEncoding.SINGLE_BYTE, field="owner")
    size = _remaining(header.body_size, start, body, "identifier")
    identifier, body = body.read_bytes(size, field="identifier")
    return UniqueFileIdentifier(owner=owner, identifier=identifier), body


def _read_comment(body: BitCursor, header: FrameHeader) -> Tuple[Comment, BitCursor]:
    start = body
    encoding, body = read_encoding(body)
    language, body = body.read_bytes(3, field="language")
    description, body = decode_text(body, encoding, field="description")
    size = _remaining(header.body_size, start, body, "text")
    text, body = decode_text(body, encoding, size, field="text")
    comment = Comment(
        encoding=encoding,
        language=language.decode("latin-1").rstrip("\x00"),
        description=description,
        text=text,
    )
    return comment, body


FRAME_DECODERS: Dict[FrameKind, Callable[[BitCursor, FrameHeader], Tuple[Frame, BitCursor]]] = {
    FrameKind.TEXT_FIELD: _read_text_field,
    FrameKind.PICTURE: _read_picture,
    FrameKind.UFID: _read_ufid,
    FrameKind.COMMENT: _read_comment,
}


def _read_tag_header(cursor: BitCursor) -> Tuple[TagHeader, BitCursor]:
    major_version, cursor = cursor.read_u8(field="major_version")
    minor_version, cursor = cursor.read_u8(field="minor_version")
    unsynchronisation, cursor = cursor.read_flag(field="unsynchronisation")
    extended_header, cursor = cursor.read_flag(field="extended_header")
    experimental, cursor = cursor.read_flag(field="experimental")
    _, cursor = cursor.read_bits(5, field="reserved")
    size, cursor = read_synchsafe28(cursor, field="size")
    header = TagHeader(
        major_version=major_version,
        minor_version=minor_version,
        unsynchronisation=unsynchronisation,
        extended_header=extended_header,
        experimental=experimental,
        size=size,
    )
    return header, cursor


def _read_frame_flags(cursor: BitCursor) -> Tuple[FrameFlags, BitCursor]:
    tag_alter_preservation, cursor = cursor.read_flag(field="tag_alter_preservation")
    file_alter_preservation, cursor = cursor.read_flag(field="file_alter_preservation")
    read_only, cursor = cursor.read_flag(field="read_only")
    _, cursor = cursor.read_bits(5, field="reserved")
    compression, cursor = cursor.read_flag(field="compression")
    encryption, cursor = cursor.read_flag(field="encryption")
    grouping_identity, cursor = cursor.read_flag(field="grouping_identity")
    _, cursor = cursor.read_bits(5, field="reserved")
    flags = FrameFlags(
        tag_alter_preservation=tag_alter_preservation,
        file_alter_preservation=file_alter_preservation,
        read_only=read_only,
        compression=compression,
        encryption=encryption,
        grouping_identity=grouping_identity,
    )
    return flags, cursor


def _read_frame_header(cursor: BitCursor) -> Tuple[FrameHeader, BitCursor]:
    start = cursor
    raw_id, cursor = cursor.read_bytes(4, field="frame_id")
    size, cursor = cursor.read_u32(field="frame_size")
    flags, cursor = _read_frame_flags(cursor)
    decompressed_size = encryption_method = group_id = None
    if flags.compression:
        decompressed_size, cursor = cursor.read_u32(field="decompressed_size")
    if flags.encryption:
        encryption_method, cursor = cursor.read_u8(field="encryption_method")
    if flags.grouping_identity:
        group_id, cursor = cursor.read_u8(field="group_id")
    extra_size = cursor.bytes_since(start) - FRAME_HEADER_SIZE
    if extra_size > size:
        raise MalformedFieldError(
            f"Frame size {size} is smaller than its {extra_size} header extension bytes",
            field="frame_size",
            offset=start.byte_offset + 4,
        )
    header = FrameHeader(
        frame_id=raw_id.decode("latin-1"),
        size=size,
        flags=flags,
        decompressed_size=decompressed_size,
        encryption_method=encryption_method,
        group_id=group_id,
        extra_size=extra_size,
    )
    return header, cursor


def _read_frame(cursor: BitCursor, header: FrameHeader) -> Tuple[Frame, BitCursor]:
    kind = FRAME_KINDS.get(header.frame_id)
    if kind is None:
        header_start = cursor.byte_offset - FRAME_HEADER_SIZE - header.extra_size
        raise UnsupportedFrameIdError(header.frame_id, offset=header_start)
    body, rest = cursor.split(header.body_size, field=header.frame_id)
    frame, body = FRAME_DECODERS[kind](body, header)
    body.expect_exhausted(f"{header.frame_id} frame")
    return frame, rest


def _at_padding(cursor: BitCursor) -> bool:
    return not cursor.at_end and cursor.data[cursor.byte_offset] == 0


def _skip_padding(cursor: BitCursor) -> BitCursor:
    padding, cursor = cursor.read_bytes(cursor.remaining_bytes, field="padding")
    if padding.count(0) != len(padding):
        raise MalformedFieldError(
            "Non-zero bytes inside tag padding",
            field="padding",
            offset=cursor.byte_offset - len(padding),
        )
    return cursor


def decode_id3v2(buffer: Buffer) -> Id3v2Document:
    """Decode the ID3v2 tag at the start of ``buffer``."""
    if bytes(buffer[: len(MAGIC)]) != MAGIC:
        raise MagicMismatchError("Not an ID3v2 tag: missing ID3 marker", field="magic", offset=0)
    cursor = BitCursor.over(buffer).skip_bytes(len(MAGIC))
    try:
        header, cursor = _read_tag_header(cursor)
    except DecodeError as exc:
        exc.add_context("tag header")
        raise
    if header.unsynchronisation:
        raise UnsupportedFeatureError(
            "ID3v2 unsynchronisation is not yet implemented",
            field="unsynchronisation",
            offset=5,
        )
    if header.extended_header:
        raise UnsupportedFeatureError(
            "ID3v2 extended headers are not yet implemented",
            field="extended_header",
            offset=5,
        )
    try:
        body, _ = cursor.split(header.size, field="tag")
    except DecodeError as exc:
        exc.add_context("tag header")
        raise

    start = body
    frames: List[Frame] = []
    while body.bytes_since(start) < header.size:
        if _at_padding(body):
            logger.debug("Padding of %d bytes after %d frames", body.remaining_bytes, len(frames))
            body = _skip_padding(body)
            break
        label = f"frame {len(frames)}"
        try:
            frame_header, body = _read_frame_header(body)
            label = f"{label} ({frame_header.frame_id})"
            logger.debug("Frame %s: size=%d", frame_header.frame_id, frame_header.size)
            frame, body = _read_frame(body, frame_header)
        except DecodeError as exc:
            exc.add_context(label)
            raise
        frames.append(frame)
    return Id3v2Document(header=header, frames=tuple(frames))
