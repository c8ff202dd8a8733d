from __future__ import annotations

import asyncio
from typing import Callable

from ..batch import BatchDecoder
from ..config import Settings
from ..loader import TagResult
from ..scanner import LibraryScanner
from ..watch import TagWatcher
from .output import result_line


def run(settings: Settings, *, emit: Callable[[str], None] = print) -> None:
    def report(result: TagResult) -> None:
        emit(result_line(result))

    watcher = TagWatcher(
        LibraryScanner(settings.library),
        BatchDecoder(settings.workers.concurrency),
        report,
    )
    try:
        asyncio.run(watcher.run())
    except KeyboardInterrupt:
        pass
