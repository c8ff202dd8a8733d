from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

from ..loader import load_result


def run(path: Path, *, include_binary: bool = False, emit: Callable[[str], None] = print) -> bool:
    result = load_result(path)
    record = result.to_record(include_binary=include_binary)
    emit(json.dumps(record, indent=2, ensure_ascii=False))
    return result.ok
