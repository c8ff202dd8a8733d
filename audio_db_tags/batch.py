from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .errors import UnexpectedFailureError
from .loader import TagResult, load_result

logger = logging.getLogger(__name__)

ResultSink = Callable[[int, TagResult], None]


@dataclass(frozen=True)
class DecodeJob:
    index: int
    path: Path


class BatchDecoder:
    """Decodes files on a pool of asyncio workers, one file per executor job.

    Decoding shares nothing between files, so workers need no locking; the
    only coordination is the job queue.
    """

    def __init__(
        self,
        concurrency: int = 4,
        *,
        decode: Callable[[Path], TagResult] = load_result,
    ) -> None:
        self.concurrency = max(1, concurrency)
        self.decode = decode

    async def decode_all(
        self,
        paths: Iterable[Path],
        on_result: Optional[Callable[[TagResult], None]] = None,
    ) -> List[TagResult]:
        """Decode ``paths`` and return the results in input order."""
        queue: asyncio.Queue[DecodeJob] = asyncio.Queue()
        for index, path in enumerate(paths):
            queue.put_nowait(DecodeJob(index=index, path=path))
        slots: List[Optional[TagResult]] = [None] * queue.qsize()
        logger.debug("Decoding %d files with %d workers", len(slots), self.concurrency)

        def sink(index: int, result: TagResult) -> None:
            slots[index] = result
            if on_result:
                on_result(result)

        workers = self.start_workers(queue, sink)
        await queue.join()
        await self.stop_workers(workers)
        return [result for result in slots if result is not None]

    def start_workers(
        self, queue: asyncio.Queue[DecodeJob], sink: ResultSink
    ) -> list[asyncio.Task[None]]:
        return [
            asyncio.create_task(self._worker(i, queue, sink))
            for i in range(self.concurrency)
        ]

    async def stop_workers(self, workers: list[asyncio.Task[None]]) -> None:
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

    async def _worker(
        self, worker_id: int, queue: asyncio.Queue[DecodeJob], sink: ResultSink
    ) -> None:
        loop = asyncio.get_running_loop()
        while True:
            job = await queue.get()
            try:
                result = await loop.run_in_executor(None, self.decode, job.path)
            except Exception as exc:
                logger.exception("Worker %s failed to process %s", worker_id, job.path)
                result = TagResult(path=job.path, error=UnexpectedFailureError(job.path, exc))
            try:
                sink(job.index, result)
            except Exception:
                logger.exception("Worker %s could not report the result for %s", worker_id, job.path)
            finally:
                queue.task_done()
