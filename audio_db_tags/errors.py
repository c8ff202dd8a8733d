from __future__ import annotations

from pathlib import Path
from typing import Optional


class TagError(Exception):
    """Base class for everything that can go wrong while reading a file's tags."""


class FileAccessError(TagError):
    """Raised when the bytes of a file could not be obtained at all."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Could not read {path}: {reason}")
        self.path = path
        self.reason = reason


class UnexpectedFailureError(TagError):
    """Wraps an exception that escaped the decoders so the file still gets a result."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"Unexpected {type(cause).__name__} while reading {path}: {cause}")
        self.path = path
        self.cause = cause


class DecodeError(TagError):
    """A failure raised by one of the decoders.

    ``field`` names the value being read and ``offset`` is the byte position
    in the input buffer where it started. Decode loops call
    :meth:`add_context` while the error propagates so the final message reads
    from the outermost block/frame down to the failing field.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        offset: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.offset = offset
        self.context: list[str] = []

    def add_context(self, label: str) -> None:
        self.context.insert(0, label)

    def __str__(self) -> str:
        parts = []
        if self.context:
            parts.append(" > ".join(self.context) + ": ")
        parts.append(self.message)
        details = []
        if self.field:
            details.append(f"field {self.field}")
        if self.offset is not None:
            details.append(f"byte {self.offset}")
        if details:
            parts.append(f" ({', '.join(details)})")
        return "".join(parts)


class FormatError(DecodeError):
    """The bytes do not form a valid instance of the expected format."""


class MagicMismatchError(FormatError):
    """The buffer does not start with the format's magic bytes."""


class MalformedFieldError(FormatError):
    """A field holds a value the format does not allow."""


class OutOfBoundsError(MalformedFieldError):
    """A read went past the end of the buffer or of the enclosing block/frame."""


class TextEncodingError(MalformedFieldError):
    """Text bytes could not be decoded with the declared encoding."""


class UnsupportedBlockTypeError(FormatError):
    def __init__(self, block_type: int, *, offset: Optional[int] = None) -> None:
        super().__init__(
            f"Unsupported FLAC metadata block type {block_type}",
            field="block_type",
            offset=offset,
        )
        self.block_type = block_type


class UnsupportedFrameIdError(FormatError):
    def __init__(self, frame_id: str, *, offset: Optional[int] = None) -> None:
        super().__init__(
            f"Unsupported frame ID: {frame_id}",
            field="frame_id",
            offset=offset,
        )
        self.frame_id = frame_id


class UnsupportedFeatureError(DecodeError):
    """A recognised format feature this package does not implement yet."""
