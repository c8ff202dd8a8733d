import asyncio
import tempfile
import unittest
from pathlib import Path

from audio_db_tags.batch import BatchDecoder, DecodeJob
from audio_db_tags.config import LibrarySettings
from audio_db_tags.loader import TagResult
from audio_db_tags.scanner import LibraryScanner
from audio_db_tags.watch import TagWatcher, WatchHandler


class _Event:
    def __init__(self, src_path, *, dest_path=None, is_directory: bool = False) -> None:
        self.src_path = src_path
        self.is_directory = is_directory
        if dest_path is not None:
            self.dest_path = dest_path


class TestWatchHandler(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.queue: asyncio.Queue[DecodeJob] = asyncio.Queue()
        scanner = LibraryScanner(LibrarySettings(exclude_patterns=["*/.incoming/*"]))
        self.handler = WatchHandler(self.queue, scanner, loop=asyncio.get_running_loop())

    async def test_bytes_src_path_is_decoded(self) -> None:
        self.handler.on_created(_Event(b"/music/Artist/Album/01.mp3"))  # type: ignore[arg-type]
        job = await asyncio.wait_for(self.queue.get(), timeout=1.0)
        self.assertEqual(job.path, Path("/music/Artist/Album/01.mp3"))
        self.assertEqual(job.index, -1)

    async def test_moved_file_uses_destination(self) -> None:
        event = _Event("/music/tmp.part", dest_path="/music/Album/02.flac")
        self.handler.on_moved(event)  # type: ignore[arg-type]
        job = await asyncio.wait_for(self.queue.get(), timeout=1.0)
        self.assertEqual(job.path, Path("/music/Album/02.flac"))

    async def test_ignores_directories_other_extensions_and_excluded_paths(self) -> None:
        self.handler.on_created(_Event("/music/Album.flac", is_directory=True))  # type: ignore[arg-type]
        self.handler.on_modified(_Event("/music/Album/cover.jpg"))  # type: ignore[arg-type]
        self.handler.on_modified(_Event("/music/.incoming/01.flac"))  # type: ignore[arg-type]
        await asyncio.sleep(0)
        self.assertTrue(self.queue.empty())


class TestTagWatcher(unittest.IsolatedAsyncioTestCase):
    async def test_decodes_new_files_until_cancelled(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            scanner = LibraryScanner(LibrarySettings(roots=[root]))
            seen: list[TagResult] = []
            watcher = TagWatcher(
                scanner,
                BatchDecoder(1, decode=lambda p: TagResult(path=p)),
                seen.append,
            )
            task = asyncio.create_task(watcher.run())
            await asyncio.sleep(0.1)
            watcher.queue.put_nowait(DecodeJob(index=-1, path=root / "a.flac"))
            await asyncio.wait_for(watcher.queue.join(), timeout=2.0)
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

            self.assertEqual([r.path for r in seen], [root / "a.flac"])
            self.assertIsNotNone(watcher.observer)
            self.assertFalse(watcher.observer.is_alive())


if __name__ == "__main__":
    unittest.main()
