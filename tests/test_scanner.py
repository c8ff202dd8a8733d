import tempfile
import unittest
from pathlib import Path

from audio_db_tags.config import LibrarySettings
from audio_db_tags.scanner import LibraryScanner


class TestLibraryScanner(unittest.TestCase):
    def test_walks_roots_in_sorted_order(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            for rel in ["B/02.mp3", "B/01.FLAC", "A/track.flac", "A/cover.jpg", "top.mp3", "Skip/x.flac"]:
                path = root / rel
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(b"")

            scanner = LibraryScanner(
                LibrarySettings(roots=[root], exclude_patterns=["*/Skip/*"])
            )
            found = [p.relative_to(root).as_posix() for p in scanner.iter_files()]
            self.assertEqual(found, ["top.mp3", "A/track.flac", "B/01.FLAC", "B/02.mp3"])

    def test_file_roots_and_missing_roots(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            single = root / "one.flac"
            single.write_bytes(b"")
            missing = root / "missing"
            scanner = LibraryScanner(LibrarySettings(roots=[single, missing]))
            with self.assertLogs("audio_db_tags.scanner", level="WARNING") as logs:
                found = list(scanner.iter_files())
            self.assertEqual(found, [single])
            self.assertIn("does not exist", logs.output[0])

    def test_extension_filter_is_configurable(self) -> None:
        scanner = LibraryScanner(LibrarySettings(include_extensions=["flac"]))
        self.assertTrue(scanner.should_include(Path("/m/a.Flac")))
        self.assertFalse(scanner.should_include(Path("/m/a.mp3")))


if __name__ == "__main__":
    unittest.main()
