"""Decode ID3v2.3 tags written by mutagen."""

import tempfile
import unittest
from pathlib import Path

from mutagen.id3 import APIC, COMM, ID3, TALB, TIT2, TPE1, TPE2, TPOS, TRCK, TXXX, UFID

from audio_db_tags.id3v2 import AttachedPicture, UniqueFileIdentifier, decode_id3v2

PNG = b"\x89PNG\r\n\x1a\n" + bytes(range(200))


def build_tags() -> ID3:
    tags = ID3()
    tags.add(TIT2(encoding=0, text=["Hunter"]))
    tags.add(TPE1(encoding=1, text=["Björk"]))
    tags.add(TALB(encoding=1, text=["Homogenic"]))
    tags.add(TRCK(encoding=0, text=["1/10"]))
    tags.add(TPOS(encoding=0, text=["1/1"]))
    tags.add(TPE2(encoding=0, text=["Bjork"]))
    tags.add(TXXX(encoding=0, desc="CATALOG", text=["TPLP71"]))
    tags.add(APIC(encoding=1, mime="image/png", type=3, desc="Front", data=PNG))
    tags.add(COMM(encoding=1, lang="eng", desc="note", text=["Recorded in Spain"]))
    tags.add(UFID(owner="http://musicbrainz.org", data=b"0b0c1b2a-7e3e-4c36"))
    return tags


class TestMutagenWrittenTags(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "song.mp3"
        self.path.write_bytes(b"")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _decode(self, padding):
        build_tags().save(str(self.path), v2_version=3, padding=padding)
        return decode_id3v2(self.path.read_bytes())

    def _assert_frames(self, doc) -> None:
        self.assertEqual(doc.header.major_version, 3)
        self.assertEqual(doc.text("TIT2"), "Hunter")
        self.assertEqual(doc.text("TPE1"), "Björk")
        self.assertEqual(doc.text("TALB"), "Homogenic")
        self.assertEqual(doc.text("TRCK"), "1/10")
        self.assertEqual(doc.text("TPOS"), "1/1")
        self.assertEqual(doc.text("TPE2"), "Bjork")
        self.assertEqual(doc.text("TXXX"), "CATALOG\x00TPLP71")

        [picture] = doc.pictures
        self.assertIsInstance(picture, AttachedPicture)
        self.assertEqual(picture.mime_type, "image/png")
        self.assertEqual(picture.picture_type, 3)
        self.assertEqual(picture.description, "Front")
        self.assertEqual(picture.data, PNG)

        [comment] = doc.comments
        self.assertEqual(comment.language, "eng")
        self.assertEqual(comment.description, "note")
        self.assertEqual(comment.text, "Recorded in Spain")

        [ufid] = [f for f in doc.frames if isinstance(f, UniqueFileIdentifier)]
        self.assertEqual(ufid.owner, "http://musicbrainz.org")
        self.assertEqual(ufid.identifier, b"0b0c1b2a-7e3e-4c36")
        self.assertEqual(len(doc.frames), 10)

    def test_without_padding(self) -> None:
        self._assert_frames(self._decode(lambda info: 0))

    def test_with_padding(self) -> None:
        doc = self._decode(lambda info: 2048)
        self._assert_frames(doc)
        self.assertGreater(doc.header.size, 2048)


if __name__ == "__main__":
    unittest.main()
