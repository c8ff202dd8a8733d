"Read FLAC metadata blocks and ID3v2 frames directly from file bytes."

from importlib import metadata

from .errors import (
    DecodeError,
    FileAccessError,
    FormatError,
    MagicMismatchError,
    MalformedFieldError,
    OutOfBoundsError,
    TagError,
    TextEncodingError,
    UnsupportedBlockTypeError,
    UnsupportedFeatureError,
    UnexpectedFailureError,
    UnsupportedFrameIdError,
)
from .flac import FlacDocument, decode_flac
from .id3v2 import Id3v2Document, decode_id3v2

__all__ = [
    "__version__",
    "DecodeError",
    "FileAccessError",
    "FlacDocument",
    "FormatError",
    "Id3v2Document",
    "MagicMismatchError",
    "MalformedFieldError",
    "OutOfBoundsError",
    "TagError",
    "TextEncodingError",
    "UnsupportedBlockTypeError",
    "UnsupportedFeatureError",
    "UnexpectedFailureError",
    "UnsupportedFrameIdError",
    "decode_flac",
    "decode_id3v2",
]


def __getattr__(name: str) -> str:
    if name == "__version__":
        try:
            return metadata.version("audio-db-tags")
        except metadata.PackageNotFoundError:  # pragma: no cover - during editable dev installs
            return "0.0.0"
    raise AttributeError(name)
