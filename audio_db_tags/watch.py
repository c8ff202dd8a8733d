from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .batch import BatchDecoder, DecodeJob
from .loader import TagResult
from .scanner import LibraryScanner

logger = logging.getLogger(__name__)


def _event_path(raw: object) -> Path:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return Path(str(raw))


class WatchHandler(FileSystemEventHandler):
    def __init__(
        self,
        queue: asyncio.Queue[DecodeJob],
        scanner: LibraryScanner,
        *,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        super().__init__()
        self.queue = queue
        self.scanner = scanner
        self.loop = loop

    def on_created(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event, getattr(event, "dest_path", event.src_path))

    def _maybe_enqueue(self, event: FileSystemEvent, raw_path: object) -> None:
        if event.is_directory:
            return
        path = _event_path(raw_path)
        if not self.scanner.should_include(path):
            return
        logger.debug("Queued changed file: %s", path)
        self.loop.call_soon_threadsafe(self.queue.put_nowait, DecodeJob(index=-1, path=path))


class TagWatcher:
    """Decodes every matching file that appears or changes under the library roots."""

    def __init__(
        self,
        scanner: LibraryScanner,
        decoder: BatchDecoder,
        on_result: Callable[[TagResult], None],
    ) -> None:
        self.scanner = scanner
        self.decoder = decoder
        self.on_result = on_result
        self.queue: asyncio.Queue[DecodeJob] = asyncio.Queue()
        self.observer: Optional[Observer] = None

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        self._start_observer(loop)
        workers = self.decoder.start_workers(self.queue, lambda _, result: self.on_result(result))
        try:
            while True:
                await asyncio.sleep(3600)
        except (asyncio.CancelledError, KeyboardInterrupt):
            logger.debug("Watcher stopping")
        finally:
            if self.observer:
                self.observer.stop()
                self.observer.join()
            await self.decoder.stop_workers(workers)

    def _start_observer(self, loop: asyncio.AbstractEventLoop) -> None:
        handler = WatchHandler(self.queue, self.scanner, loop=loop)
        observer = Observer()
        for root in self.scanner.settings.roots:
            if not root.is_dir():
                logger.warning("Not watching %s: not a directory", root)
                continue
            observer.schedule(handler, str(root), recursive=True)
            logger.info("Watching %s", root)
        observer.start()
        self.observer = observer
