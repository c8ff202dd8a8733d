from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterator
from pathlib import Path

from .config import LibrarySettings

logger = logging.getLogger(__name__)


class LibraryScanner:
    """Walks the configured roots and yields the files a decoder exists for."""

    def __init__(self, settings: LibrarySettings) -> None:
        self.settings = settings
        self._exts = {ext.lower() for ext in self.settings.include_extensions}

    def iter_files(self) -> Iterator[Path]:
        for root in self.settings.roots:
            if not root.exists():
                logger.warning("Library root %s does not exist", root)
                continue
            if root.is_file():
                if self.should_include(root):
                    yield root
                continue
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames.sort()
                directory = Path(dirpath)
                for name in sorted(filenames):
                    file_path = directory / name
                    if self.should_include(file_path):
                        yield file_path

    def should_include(self, path: Path) -> bool:
        if path.suffix.lower() not in self._exts:
            return False
        rel = str(path)
        for pattern in self.settings.exclude_patterns:
            if fnmatch.fnmatch(rel, pattern):
                return False
        return True
