# tests/core/test_file_classifier.py
import unittest
from unittest import mock # For mocking 'magic' module

from dupesweep.core.file_classifier import EXTENSION_TO_KIND, classify_group, classify_path
from dupesweep.core.models import DuplicateGroup, FileRecord


class TestFileClassifier(unittest.TestCase):

    @mock.patch('dupesweep.core.file_classifier.magic')
    def test_classify_by_extension(self, mock_magic):
        for ext, kind in EXTENSION_TO_KIND.items():
            # The file does not need to exist when the extension is known
            self.assertEqual(classify_path(f"testfile{ext}", ext), kind, f"Failed for extension {ext}")
        mock_magic.from_file.assert_not_called()

    def test_extension_is_case_insensitive(self):
        self.assertEqual(classify_path("IMG_0001.JPG", ".JPG"), "image")

    @mock.patch('dupesweep.core.file_classifier.magic')
    def test_classify_by_magic_image(self, mock_magic):
        mock_magic.from_file.return_value = "image/jpeg"
        self.assertEqual(classify_path("testfile_no_ext"), "image")
        mock_magic.from_file.assert_called_once_with("testfile_no_ext", mime=True)

    @mock.patch('dupesweep.core.file_classifier.magic')
    def test_classify_by_magic_other_mimes(self, mock_magic):
        cases = {
            "text/plain": "document",
            "application/pdf": "document",
            "application/zip": "archive",
            "application/json": "data",
            "application/octet-stream": "other",
        }
        for mime, kind in cases.items():
            mock_magic.from_file.return_value = mime
            self.assertEqual(classify_path("somefile.unk", ".unk"), kind, f"Failed for {mime}")

    @mock.patch('dupesweep.core.file_classifier.magic')
    def test_classify_magic_exception(self, mock_magic):
        mock_magic.MagicException = Exception # Make it a generic exception for the mock to raise
        mock_magic.from_file.side_effect = mock_magic.MagicException("Magic error")
        self.assertEqual(classify_path("testfile_error"), "other")

    @mock.patch('dupesweep.core.file_classifier.magic')
    def test_classify_magic_returns_nothing(self, mock_magic):
        mock_magic.from_file.return_value = None
        self.assertEqual(classify_path("testfile.unknownext", ".unknownext"), "other")

    def test_classify_group_uses_first_member(self):
        files = [FileRecord(path="/a/song.mp3", size=10), FileRecord(path="/b/song copy.mp3", size=10)]
        group = DuplicateGroup(hash_sha256="h", files=files, size=10)
        self.assertEqual(classify_group(group), "audio")
        self.assertEqual(classify_group(DuplicateGroup(hash_sha256="h", files=[], size=0)), "other")


if __name__ == '__main__':
    unittest.main()
