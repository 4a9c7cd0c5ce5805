# tests/core/test_scanner.py
import hashlib
import os
import tempfile
import unittest

from dupesweep.core.config import ScanConfig
from dupesweep.core.errors import ScanCancelled
from dupesweep.core.scanner import (
    _calculate_partial_hash,
    _calculate_sha256,
    collect_size_buckets,
    iter_regular_files,
)


def write_file(path, content):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(content)
    return path


class TestHashing(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def test_calculate_sha256(self):
        content = b"test content for hashing" * 5000
        path = write_file(os.path.join(self.root, "a.bin"), content)
        self.assertEqual(_calculate_sha256(path, block_size=1024), hashlib.sha256(content).hexdigest())

    def test_calculate_sha256_missing_file_raises(self):
        with self.assertRaises(OSError):
            _calculate_sha256(os.path.join(self.root, "missing.bin"))

    def test_partial_hash_small_file_uses_head_only(self):
        content = b"x" * 100
        path = write_file(os.path.join(self.root, "small.bin"), content)
        expected = hashlib.blake2b(content, digest_size=16).hexdigest()
        self.assertEqual(_calculate_partial_hash(path, len(content)), expected)

    def test_partial_hash_reads_head_middle_and_tail(self):
        size = 40000
        content = bytes(i % 251 for i in range(size))
        path = write_file(os.path.join(self.root, "big.bin"), content)
        digest = hashlib.blake2b(digest_size=16)
        digest.update(content[:4096])
        digest.update(content[size // 2:size // 2 + 4096])
        digest.update(content[size - 4096:])
        self.assertEqual(_calculate_partial_hash(path, size), digest.hexdigest())

    def test_partial_hash_middle_window_only_between_two_and_three_windows(self):
        size = 4096 * 2 + 100
        content = bytes(i % 13 for i in range(size))
        path = write_file(os.path.join(self.root, "mid.bin"), content)
        digest = hashlib.blake2b(digest_size=16)
        digest.update(content[:4096])
        digest.update(content[size // 2:size // 2 + 4096])
        self.assertEqual(_calculate_partial_hash(path, size), digest.hexdigest())

    def test_partial_hash_ignores_bytes_outside_windows(self):
        size = 40000
        base = bytearray(b"\x01" * size)
        other = bytearray(base)
        other[10000] = 0x02 # between head and middle windows
        a = write_file(os.path.join(self.root, "a.bin"), bytes(base))
        b = write_file(os.path.join(self.root, "b.bin"), bytes(other))
        self.assertEqual(_calculate_partial_hash(a, size), _calculate_partial_hash(b, size))
        self.assertNotEqual(_calculate_sha256(a), _calculate_sha256(b))


class TestEnumeration(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name
        self.config = ScanConfig()
        self.errors = {}

    def tearDown(self):
        self.tmp.cleanup()

    def test_iter_regular_files_prunes_noise_hidden_and_bundles(self):
        keep = write_file(os.path.join(self.root, "docs", "a.txt"), b"a")
        write_file(os.path.join(self.root, ".git", "objects", "x"), b"a")
        write_file(os.path.join(self.root, "proj", "node_modules", "lib", "x.js"), b"a")
        write_file(os.path.join(self.root, ".hidden_dir", "x.txt"), b"a")
        write_file(os.path.join(self.root, "docs", ".DS_Store"), b"a")
        write_file(os.path.join(self.root, "Tool.app", "Contents", "x"), b"a")

        found = list(iter_regular_files(self.root, self.config, self.errors))
        self.assertEqual(found, [keep])

    def test_hidden_files_kept_when_skip_hidden_disabled(self):
        hidden = write_file(os.path.join(self.root, ".profile"), b"a")
        config = ScanConfig(skip_hidden=False)
        self.assertIn(hidden, list(iter_regular_files(self.root, config, self.errors)))

    def test_collect_size_buckets_drops_unique_sizes_and_empty_files(self):
        a = write_file(os.path.join(self.root, "a", "x.bin"), b"1" * 100)
        b = write_file(os.path.join(self.root, "b", "y.bin"), b"2" * 100)
        write_file(os.path.join(self.root, "unique.bin"), b"3" * 55)
        write_file(os.path.join(self.root, "empty1"), b"")
        write_file(os.path.join(self.root, "empty2"), b"")

        buckets = collect_size_buckets([self.root], self.config, self.errors, lambda: False)
        self.assertEqual(list(buckets.keys()), [100])
        self.assertEqual(sorted(buckets[100]), sorted([a, b]))

    def test_collect_size_buckets_skips_missing_root(self):
        missing = os.path.join(self.root, "does-not-exist")
        buckets = collect_size_buckets([missing], self.config, self.errors, lambda: False)
        self.assertEqual(buckets, {})
        self.assertIn(missing, self.errors)

    def test_overlapping_roots_do_not_duplicate_a_file(self):
        write_file(os.path.join(self.root, "sub", "x.bin"), b"1" * 10)
        buckets = collect_size_buckets(
            [self.root, os.path.join(self.root, "sub")], self.config, self.errors, lambda: False
        )
        self.assertEqual(buckets, {})

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_symlinks_are_not_followed(self):
        target = write_file(os.path.join(self.root, "real.bin"), b"1" * 10)
        os.symlink(target, os.path.join(self.root, "link.bin"))
        os.symlink(os.path.join(self.root, "gone.bin"), os.path.join(self.root, "broken.bin"))
        buckets = collect_size_buckets([self.root], self.config, self.errors, lambda: False)
        self.assertEqual(buckets, {})

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_symlinked_root_does_not_duplicate_a_file(self):
        photos = os.path.join(self.root, "photos")
        write_file(os.path.join(photos, "only.bin"), b"1" * 100)
        alias = os.path.join(self.root, "photos_link")
        os.symlink(photos, alias)

        buckets = collect_size_buckets([photos, alias], self.config, self.errors, lambda: False)
        self.assertEqual(buckets, {})

    @unittest.skipUnless(hasattr(os, "link"), "hard links not supported")
    def test_hard_links_count_as_one_file(self):
        original = write_file(os.path.join(self.root, "a", "x.bin"), b"1" * 100)
        os.makedirs(os.path.join(self.root, "b"))
        os.link(original, os.path.join(self.root, "b", "x.bin"))

        buckets = collect_size_buckets([self.root], self.config, self.errors, lambda: False)
        self.assertEqual(buckets, {})

    def test_collect_size_buckets_raises_when_cancelled(self):
        write_file(os.path.join(self.root, "x.bin"), b"1")
        with self.assertRaises(ScanCancelled):
            collect_size_buckets([self.root], self.config, self.errors, lambda: True)

    def test_progress_func_receives_file_count(self):
        write_file(os.path.join(self.root, "x.bin"), b"1")
        write_file(os.path.join(self.root, "y.bin"), b"2")
        counts = []
        collect_size_buckets([self.root], self.config, self.errors, lambda: False, counts.append)
        self.assertEqual(counts, [2])


if __name__ == '__main__':
    unittest.main()
