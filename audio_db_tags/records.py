from __future__ import annotations

import base64
import dataclasses
from enum import Enum
from pathlib import Path


def to_record(value: object, *, include_binary: bool = False) -> object:
    """Turn decoded blocks/frames into JSON-ready values.

    Dataclasses become dicts that also carry the block type where the class
    declares one, enums are rendered by name and byte payloads are either
    summarised by length or base64 encoded.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        payload: dict[str, object] = {"type": type(value).__name__}
        for item in dataclasses.fields(value):
            payload[item.name] = to_record(getattr(value, item.name), include_binary=include_binary)
        return payload
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (bytes, bytearray)):
        if include_binary:
            return base64.b64encode(value).decode("ascii")
        return f"<{len(value)} bytes>"
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_record(item, include_binary=include_binary) for item in value]
    if isinstance(value, dict):
        return {str(k): to_record(v, include_binary=include_binary) for k, v in value.items()}
    return value
