from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..flac import FlacDocument
from ..id3v2 import TextField
from ..loader import Document, TagResult


@dataclass(frozen=True, slots=True)
class ResultLine:
    label: str
    status: str
    detail: Optional[str] = None

    def render(self) -> str:
        if self.detail:
            return f"{self.label}: {self.status} ({self.detail})"
        return f"{self.label}: {self.status}"


def describe(document: Document) -> str:
    if isinstance(document, FlacDocument):
        kinds = ", ".join(type(block).__name__ for block in document.blocks)
        detail = f"flac, {len(document.blocks)} blocks [{kinds}]"
        info = document.stream_info
        if info:
            detail += f", {info.sample_rate} Hz {info.channels}ch {info.bits_per_sample}bit"
        return detail
    ids = ", ".join(
        frame.frame_id if isinstance(frame, TextField) else type(frame).__name__
        for frame in document.frames
    )
    header = document.header
    return f"id3v2.{header.major_version}, {len(document.frames)} frames [{ids}]"


def result_line(result: TagResult) -> str:
    if result.document is not None:
        return ResultLine(str(result.path), "OK", describe(result.document)).render()
    return ResultLine(str(result.path), "ERROR", str(result.error)).render()
