from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ..batch import BatchDecoder
from ..config import Settings
from ..loader import TagResult
from ..scanner import LibraryScanner
from .output import result_line

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanReport:
    total: int = 0
    failed: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def run(settings: Settings, *, emit: Callable[[str], None] = print) -> ScanReport:
    scanner = LibraryScanner(settings.library)
    decoder = BatchDecoder(settings.workers.concurrency)
    results = asyncio.run(decoder.decode_all(scanner.iter_files()))

    report = ScanReport()
    for result in results:
        report.total += 1
        if not result.ok:
            report.failed.append(result.path)
        emit(_render(result, settings))
    logger.info(
        "Scanned %d files: %d ok, %d failed",
        report.total,
        report.total - len(report.failed),
        len(report.failed),
    )
    return report


def _render(result: TagResult, settings: Settings) -> str:
    if settings.output.json_lines:
        record = result.to_record(include_binary=settings.output.include_binary)
        return json.dumps(record, sort_keys=True, ensure_ascii=False)
    return result_line(result)
