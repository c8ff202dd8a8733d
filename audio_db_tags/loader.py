from __future__ import annotations

import logging
import mmap
import os
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Union

from .cursor import Buffer
from .errors import FileAccessError, TagError
from .flac import FlacDocument, decode_flac
from .id3v2 import Id3v2Document, decode_id3v2

logger = logging.getLogger(__name__)

Document = Union[FlacDocument, Id3v2Document]


class TagFormat(Enum):
    FLAC = ".flac"
    ID3V2 = ".mp3"


DECODERS: Dict[TagFormat, Callable[[Buffer], Document]] = {
    TagFormat.FLAC: decode_flac,
    TagFormat.ID3V2: decode_id3v2,
}


def format_for_path(path: Path) -> Optional[TagFormat]:
    try:
        return TagFormat(path.suffix.lower())
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class TagResult:
    path: Path
    document: Optional[Document] = None
    error: Optional[TagError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_record(self, *, include_binary: bool = False) -> Dict[str, object]:
        payload: Dict[str, object] = {"path": str(self.path), "ok": self.ok}
        if self.document is not None:
            payload["document"] = self.document.to_record(include_binary=include_binary)
        if self.error is not None:
            payload["error"] = {"type": type(self.error).__name__, "message": str(self.error)}
        return payload


@contextmanager
def mapped_buffer(path: Path) -> Iterator[Buffer]:
    """Map ``path`` read-only for the duration of the block."""
    try:
        fh = path.open("rb")
    except OSError as exc:
        raise FileAccessError(path, exc.strerror or str(exc)) from exc
    with fh:
        try:
            size = os.fstat(fh.fileno()).st_size
            # mmap refuses empty files
            mapped = mmap.mmap(fh.fileno(), 0, access=mmap.ACCESS_READ) if size else None
        except OSError as exc:
            raise FileAccessError(path, exc.strerror or str(exc)) from exc
        if mapped is None:
            yield b""
            return
        try:
            yield mapped
        finally:
            mapped.close()


def read_document(path: Path, tag_format: Optional[TagFormat] = None) -> Document:
    tag_format = tag_format or format_for_path(path)
    if tag_format is None:
        raise FileAccessError(path, f"no decoder for extension {path.suffix or '(none)'}")
    with mapped_buffer(path) as buffer:
        return DECODERS[tag_format](buffer)


def load_result(path: Path) -> TagResult:
    """Decode ``path`` and capture any failure in the returned result."""
    try:
        document = read_document(path)
    except TagError as exc:
        logger.warning("Failed to read tags from %s: %s", path, exc)
        return TagResult(path=path, error=exc)
    logger.debug("Decoded %s", path)
    return TagResult(path=path, document=document)
